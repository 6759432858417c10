import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from opsdesk.api import (
    auth,
    channels,
    credit_notes,
    currencies,
    customers,
    dashboard,
    inventory,
    invoices,
    orders,
    purchase_orders,
    realtime,
    returns,
    suppliers,
)
from opsdesk.core.config import settings
from opsdesk.core.db import Base, engine, utcnow
from opsdesk.core.errors import OpsError
from opsdesk.core.logging import configure_logging
from opsdesk.services.change_feed import ChangeFeed
from opsdesk.services.inflight import InFlightGuard

# Import models so Base.metadata knows them
import opsdesk.models  # noqa

logger = logging.getLogger(__name__)


async def ops_error_handler(request: Request, exc: OpsError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(create_tables: bool | None = None) -> FastAPI:
    app = FastAPI(title="OpsDesk Backend")

    # shared by every request; passed into services explicitly
    app.state.feed = ChangeFeed()
    app.state.guard = InFlightGuard()
    app.state.clock = utcnow

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=600,
    )
    app.add_exception_handler(OpsError, ops_error_handler)

    if settings.AUTO_CREATE_TABLES if create_tables is None else create_tables:
        Base.metadata.create_all(bind=engine)

    @app.get("/")
    def health():
        return {"status": "ok"}

    for module in (
        auth, orders, returns, inventory, channels,
        customers, suppliers, currencies, invoices, purchase_orders, credit_notes,
        dashboard, realtime,
    ):
        app.include_router(module.router)
    return app


configure_logging()
app = create_app()
