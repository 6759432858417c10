import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import or_

from opsdesk.api.deps import current_user, get_store, require_owner
from opsdesk.core.errors import ValidationFailed
from opsdesk.models.customer import Customer
from opsdesk.models.invoice import Invoice
from opsdesk.schemas.customer import CustomerCreate, CustomerOut, CustomerUpdate
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"], dependencies=[Depends(current_user)])


@router.get("", response_model=list[CustomerOut])
def list_customers(search: str | None = None, store: RecordStore = Depends(get_store)):
    criteria = []
    if search:
        like = f"%{search.strip()}%"
        criteria.append(or_(
            Customer.contact_name.ilike(like),
            Customer.company_name.ilike(like),
            Customer.email.ilike(like),
        ))
    return store.query(Customer, *criteria, order_by=(Customer.contact_name.asc(), Customer.id.asc()))


@router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_customer(payload: CustomerCreate, store: RecordStore = Depends(get_store)):
    values = payload.model_dump()
    values["email"] = values["email"].lower()
    values["currency_code"] = values["currency_code"].upper()
    customer = store.insert(Customer(**values))
    logger.info("customer #%s created (%s)", customer.id, customer.display_name)
    return customer


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: int, store: RecordStore = Depends(get_store)):
    return store.get(Customer, customer_id)


@router.patch("/{customer_id}", response_model=CustomerOut, dependencies=[Depends(require_owner)])
def update_customer(customer_id: int, payload: CustomerUpdate, store: RecordStore = Depends(get_store)):
    values = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if not values:
        return store.get(Customer, customer_id)
    if "currency_code" in values:
        values["currency_code"] = values["currency_code"].upper()
    return store.update_by_id(Customer, customer_id, values)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_owner)])
def delete_customer(customer_id: int, store: RecordStore = Depends(get_store)):
    customer = store.get(Customer, customer_id)
    invoices = store.count(Invoice, Invoice.customer_id == customer_id)
    if invoices:
        raise ValidationFailed(f"{customer.display_name} has {invoices} invoice(s) and cannot be deleted")
    store.delete_by_id(Customer, customer_id)
    logger.info("customer #%s deleted", customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
