from fastapi import APIRouter, Depends, status

from opsdesk.api.deps import current_user, get_return_tracker, require_owner
from opsdesk.core.errors import DataIntegrityError
from opsdesk.models.enums import ReturnStatus
from opsdesk.models.return_request import ReturnRequest
from opsdesk.models.user import User
from opsdesk.schemas.returns import (
    PickupCreate,
    PickupOut,
    ReturnAdvance,
    ReturnCreate,
    ReturnDetail,
    ReturnOut,
)
from opsdesk.services.return_tracker import ReturnTracker

router = APIRouter(prefix="/returns", tags=["Returns"], dependencies=[Depends(current_user)])


def return_detail(tracker: ReturnTracker, ret: ReturnRequest, pickup=None) -> ReturnDetail:
    try:
        tracker.current_stage(ret)
        integrity = None
    except DataIntegrityError as exc:
        integrity = exc.message
    pickup = pickup or ret.pickup
    return ReturnDetail(
        **ReturnOut.model_validate(ret).model_dump(),
        progress=tracker.progress(ret),
        pickup=PickupOut.model_validate(pickup) if pickup else None,
        integrity_error=integrity,
    )


@router.get("", response_model=list[ReturnOut])
def list_returns(
    status: ReturnStatus | None = None,
    search: str | None = None,
    tracker: ReturnTracker = Depends(get_return_tracker),
):
    return tracker.list(status=status, search=search)


@router.get("/stats")
def return_stats(tracker: ReturnTracker = Depends(get_return_tracker)):
    return tracker.counts()


@router.post("", response_model=ReturnDetail, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_return(payload: ReturnCreate, tracker: ReturnTracker = Depends(get_return_tracker)):
    ret = tracker.create(payload.model_dump(exclude_none=True))
    return return_detail(tracker, ret)


@router.get("/{return_id}", response_model=ReturnDetail)
def get_return(return_id: int, tracker: ReturnTracker = Depends(get_return_tracker)):
    return return_detail(tracker, tracker.get(return_id))


@router.post("/{return_id}/approve", response_model=ReturnDetail, dependencies=[Depends(require_owner)])
def approve_return(return_id: int, tracker: ReturnTracker = Depends(get_return_tracker)):
    return return_detail(tracker, tracker.approve(return_id))


@router.post("/{return_id}/reject", response_model=ReturnDetail, dependencies=[Depends(require_owner)])
def reject_return(return_id: int, tracker: ReturnTracker = Depends(get_return_tracker)):
    return return_detail(tracker, tracker.reject(return_id))


@router.post("/{return_id}/pickup", response_model=ReturnDetail, status_code=status.HTTP_201_CREATED)
def schedule_pickup(
    return_id: int,
    payload: PickupCreate,
    user: User = Depends(require_owner),
    tracker: ReturnTracker = Depends(get_return_tracker),
):
    ret, pickup = tracker.schedule_pickup(return_id, payload.model_dump(), user_id=user.id)
    return return_detail(tracker, ret, pickup)


@router.post("/{return_id}/advance", response_model=ReturnDetail, dependencies=[Depends(require_owner)])
def advance_return(return_id: int, payload: ReturnAdvance, tracker: ReturnTracker = Depends(get_return_tracker)):
    return return_detail(tracker, tracker.advance(return_id, payload.status))
