from fastapi import APIRouter, Depends, Response, status

from opsdesk.api.deps import current_user, get_purchasing, require_owner
from opsdesk.models.enums import PurchaseOrderStatus
from opsdesk.schemas.purchase_order import PurchaseOrderCreate, PurchaseOrderOut, PurchaseOrderUpdate
from opsdesk.services.purchasing import Purchasing

router = APIRouter(prefix="/purchase-orders", tags=["Purchase Orders"], dependencies=[Depends(current_user)])


@router.get("", response_model=list[PurchaseOrderOut])
def list_purchase_orders(
    status: PurchaseOrderStatus | None = None,
    search: str | None = None,
    supplier_id: int | None = None,
    purchasing: Purchasing = Depends(get_purchasing),
):
    return purchasing.list(status=status, search=search, supplier_id=supplier_id)


@router.post("", response_model=PurchaseOrderOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_purchase_order(payload: PurchaseOrderCreate, purchasing: Purchasing = Depends(get_purchasing)):
    return purchasing.create(payload.model_dump(exclude_none=True))


@router.get("/{po_id}", response_model=PurchaseOrderOut)
def get_purchase_order(po_id: int, purchasing: Purchasing = Depends(get_purchasing)):
    return purchasing.get(po_id)


@router.patch("/{po_id}", response_model=PurchaseOrderOut, dependencies=[Depends(require_owner)])
def update_purchase_order(po_id: int, payload: PurchaseOrderUpdate, purchasing: Purchasing = Depends(get_purchasing)):
    values = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not values:
        return purchasing.get(po_id)
    return purchasing.update(po_id, values)


@router.delete("/{po_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_owner)])
def delete_purchase_order(po_id: int, purchasing: Purchasing = Depends(get_purchasing)):
    purchasing.delete(po_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
