from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from opsdesk.core.db import get_db
from opsdesk.core.errors import NotAuthenticated, PermissionDenied
from opsdesk.models.enums import UserRole
from opsdesk.models.user import User
from opsdesk.services.credit_notes import CreditNotes
from opsdesk.services.identity import IdentityProvider
from opsdesk.services.invoicing import InvoiceBook
from opsdesk.services.order_tracker import OrderTracker
from opsdesk.services.purchasing import Purchasing
from opsdesk.services.record_store import RecordStore
from opsdesk.services.return_tracker import ReturnTracker

bearer = HTTPBearer(auto_error=False)


def get_store(request: Request, db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db, request.app.state.feed)


def get_identity(request: Request, store: RecordStore = Depends(get_store)) -> IdentityProvider:
    return IdentityProvider(store, clock=request.app.state.clock)


def get_order_tracker(request: Request, store: RecordStore = Depends(get_store)) -> OrderTracker:
    return OrderTracker(store, request.app.state.guard, clock=request.app.state.clock)


def get_return_tracker(request: Request, store: RecordStore = Depends(get_store)) -> ReturnTracker:
    return ReturnTracker(store, request.app.state.guard, clock=request.app.state.clock)


def get_invoice_book(request: Request, store: RecordStore = Depends(get_store)) -> InvoiceBook:
    return InvoiceBook(store, clock=request.app.state.clock)


def get_purchasing(request: Request, store: RecordStore = Depends(get_store)) -> Purchasing:
    return Purchasing(store, clock=request.app.state.clock)


def get_credit_notes(request: Request, store: RecordStore = Depends(get_store)) -> CreditNotes:
    return CreditNotes(store, clock=request.app.state.clock)


def bearer_token(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> str | None:
    return creds.credentials if creds else None


def current_user(
    token: str | None = Depends(bearer_token),
    identity: IdentityProvider = Depends(get_identity),
) -> User:
    user = identity.session(token)
    if user is None:
        raise NotAuthenticated()
    return user


def require_owner(user: User = Depends(current_user)) -> User:
    if user.role != UserRole.OWNER:
        raise PermissionDenied("Only the account owner can change data")
    return user
