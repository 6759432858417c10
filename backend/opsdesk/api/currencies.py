from fastapi import APIRouter, Depends, status

from opsdesk.api.deps import current_user, get_store, require_owner
from opsdesk.models.currency import Currency
from opsdesk.schemas.currency import CurrencyCreate, CurrencyOut, CurrencyUpdate
from opsdesk.services.record_store import RecordStore

router = APIRouter(prefix="/currencies", tags=["Currencies"], dependencies=[Depends(current_user)])


@router.get("", response_model=list[CurrencyOut])
def list_currencies(active: bool | None = None, store: RecordStore = Depends(get_store)):
    criteria = [] if active is None else [Currency.is_active == active]
    return store.query(Currency, *criteria, order_by=Currency.code.asc())


@router.post("", response_model=CurrencyOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_currency(payload: CurrencyCreate, store: RecordStore = Depends(get_store)):
    values = payload.model_dump()
    values["code"] = values["code"].upper()
    return store.insert(Currency(**values))


@router.patch("/{code}", response_model=CurrencyOut, dependencies=[Depends(require_owner)])
def update_currency(code: str, payload: CurrencyUpdate, store: RecordStore = Depends(get_store)):
    values = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not values:
        return store.get(Currency, code.upper())
    return store.update_by_id(Currency, code.upper(), values)
