import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import or_

from opsdesk.api.deps import current_user, get_store, require_owner
from opsdesk.core.errors import ValidationFailed
from opsdesk.models.enums import SupplierStatus
from opsdesk.models.purchase_order import PurchaseOrder
from opsdesk.models.supplier import Supplier
from opsdesk.schemas.supplier import SupplierCreate, SupplierOut, SupplierUpdate
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suppliers", tags=["Suppliers"], dependencies=[Depends(current_user)])


@router.get("", response_model=list[SupplierOut])
def list_suppliers(
    status: SupplierStatus | None = None,
    search: str | None = None,
    store: RecordStore = Depends(get_store),
):
    criteria = []
    if status is not None:
        criteria.append(Supplier.status == status)
    if search:
        like = f"%{search.strip()}%"
        criteria.append(or_(Supplier.name.ilike(like), Supplier.contact_person.ilike(like)))
    return store.query(Supplier, *criteria, order_by=(Supplier.name.asc(), Supplier.id.asc()))


@router.post("", response_model=SupplierOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_supplier(payload: SupplierCreate, store: RecordStore = Depends(get_store)):
    supplier = store.insert(Supplier(**payload.model_dump(exclude_none=True)))
    logger.info("supplier #%s created (%s)", supplier.id, supplier.name)
    return supplier


@router.get("/{supplier_id}", response_model=SupplierOut)
def get_supplier(supplier_id: int, store: RecordStore = Depends(get_store)):
    return store.get(Supplier, supplier_id)


@router.patch("/{supplier_id}", response_model=SupplierOut, dependencies=[Depends(require_owner)])
def update_supplier(supplier_id: int, payload: SupplierUpdate, store: RecordStore = Depends(get_store)):
    values = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not values:
        return store.get(Supplier, supplier_id)
    return store.update_by_id(Supplier, supplier_id, values)


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_owner)])
def delete_supplier(supplier_id: int, store: RecordStore = Depends(get_store)):
    supplier = store.get(Supplier, supplier_id)
    orders = store.count(PurchaseOrder, PurchaseOrder.supplier_id == supplier_id)
    if orders:
        raise ValidationFailed(f"{supplier.name} has {orders} purchase order(s); mark it inactive instead")
    store.delete_by_id(Supplier, supplier_id)
    logger.info("supplier #%s deleted", supplier_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
