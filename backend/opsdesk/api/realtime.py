import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from opsdesk.core.db import get_db
from opsdesk.services.change_feed import ChangeEvent
from opsdesk.services.identity import IdentityProvider
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

REALTIME_TABLES = {
    "orders", "returns", "reverse_pickups", "inventory", "channels",
    "customers", "suppliers", "invoices", "purchase_orders", "credit_notes",
}

# application-defined close codes
CLOSE_UNAUTHORIZED = 4401
CLOSE_UNKNOWN_TABLE = 4404


@router.websocket("/realtime/{table}")
async def realtime(websocket: WebSocket, table: str, token: str | None = None, db: Session = Depends(get_db)):
    """Stream committed row changes for ``table``.

    Extra query parameters filter by column equality, e.g. ``?id=7``.
    Each message carries only the changed row.
    """
    identity = IdentityProvider(RecordStore(db))
    user = await run_in_threadpool(identity.session, token)
    db.close()
    if user is None:
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return
    if table not in REALTIME_TABLES:
        await websocket.close(code=CLOSE_UNKNOWN_TABLE)
        return

    filters = {k: v for k, v in websocket.query_params.items() if k != "token"}
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def deliver(event: ChangeEvent) -> None:
        # called from whichever thread committed the write
        loop.call_soon_threadsafe(queue.put_nowait, event.as_dict())

    sub = websocket.app.state.feed.subscribe(table, deliver, filters)

    async def pump():
        while True:
            await websocket.send_json(await queue.get())

    async def drain():
        while True:
            await websocket.receive_text()

    try:
        await websocket.accept()
        logger.info("user #%s watching %s %s", user.id, table, filters or "")
        tasks = {asyncio.create_task(pump()), asyncio.create_task(drain())}
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
    finally:
        sub.close()
        logger.info("user #%s stopped watching %s", user.id, table)
