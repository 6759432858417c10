from fastapi import APIRouter, Depends, status

from opsdesk.api.deps import current_user, get_order_tracker, require_owner
from opsdesk.core.errors import DataIntegrityError
from opsdesk.models.enums import OrderStatus
from opsdesk.models.order import Order
from opsdesk.schemas.order import OrderAdvance, OrderCreate, OrderDetail, OrderOut
from opsdesk.services.order_tracker import OrderTracker

router = APIRouter(prefix="/orders", tags=["Orders"], dependencies=[Depends(current_user)])


def order_detail(tracker: OrderTracker, order: Order) -> OrderDetail:
    try:
        tracker.current_stage(order)
        integrity = None
    except DataIntegrityError as exc:
        integrity = exc.message
    return OrderDetail(
        **OrderOut.model_validate(order).model_dump(),
        progress=tracker.progress(order),
        integrity_error=integrity,
    )


@router.get("", response_model=list[OrderOut])
def list_orders(
    status: OrderStatus | None = None,
    search: str | None = None,
    tracker: OrderTracker = Depends(get_order_tracker),
):
    return tracker.list(status=status, search=search)


@router.get("/stats")
def order_stats(tracker: OrderTracker = Depends(get_order_tracker)):
    return tracker.counts()


@router.post("", response_model=OrderDetail, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_order(payload: OrderCreate, tracker: OrderTracker = Depends(get_order_tracker)):
    order = tracker.create(payload.model_dump(exclude_none=True))
    return order_detail(tracker, order)


@router.get("/{order_id}", response_model=OrderDetail)
def get_order(order_id: int, tracker: OrderTracker = Depends(get_order_tracker)):
    return order_detail(tracker, tracker.get(order_id))


@router.post("/{order_id}/advance", response_model=OrderDetail, dependencies=[Depends(require_owner)])
def advance_order(order_id: int, payload: OrderAdvance, tracker: OrderTracker = Depends(get_order_tracker)):
    order = tracker.advance(order_id, payload.status)
    return order_detail(tracker, order)
