import logging

from fastapi import APIRouter, Depends, Response, status

from opsdesk.api.deps import current_user, get_store, require_owner
from opsdesk.models.inventory import InventoryItem
from opsdesk.schemas.inventory import InventoryCreate, InventoryOut, InventoryUpdate
from opsdesk.services.record_store import RecordStore
from opsdesk.services.stock import StockLevel, classify, low_stock, threshold

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"], dependencies=[Depends(current_user)])


def item_out(item: InventoryItem) -> InventoryOut:
    return InventoryOut(
        id=item.id,
        sku=item.sku,
        name=item.name,
        category=item.category,
        quantity=item.quantity,
        min_quantity=item.min_quantity,
        price=item.price,
        created_at=item.created_at,
        level=classify(item.quantity, item.min_quantity),
        threshold=threshold(item.min_quantity),
    )


@router.get("", response_model=list[InventoryOut])
def list_inventory(level: StockLevel | None = None, store: RecordStore = Depends(get_store)):
    items = [item_out(i) for i in store.query(InventoryItem, order_by=InventoryItem.name.asc())]
    if level is not None:
        items = [i for i in items if i.level == level]
    return items


@router.get("/low-stock", response_model=list[InventoryOut])
def list_low_stock(store: RecordStore = Depends(get_store)):
    return [item_out(i) for i in low_stock(store.query(InventoryItem))]


@router.post("", response_model=InventoryOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_item(payload: InventoryCreate, store: RecordStore = Depends(get_store)):
    item = store.insert(InventoryItem(**payload.model_dump()))
    logger.info("inventory item #%s created (%s)", item.id, item.name)
    return item_out(item)


@router.patch("/{item_id}", response_model=InventoryOut, dependencies=[Depends(require_owner)])
def update_item(item_id: int, payload: InventoryUpdate, store: RecordStore = Depends(get_store)):
    values = payload.model_dump(exclude_unset=True)
    if not values:
        return item_out(store.get(InventoryItem, item_id))
    return item_out(store.update_by_id(InventoryItem, item_id, values))


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_owner)])
def delete_item(item_id: int, store: RecordStore = Depends(get_store)):
    store.delete_by_id(InventoryItem, item_id)
    logger.info("inventory item #%s deleted", item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
