import enum
import logging
import re
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterator, TypeVar

from sqlalchemy import func, inspect, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import Session

from opsdesk.core.errors import (
    DuplicateRecord,
    InvalidTransition,
    OpsError,
    RecordNotFound,
    RecordStoreError,
    SchemaNotProvisioned,
    ValidationFailed,
)
from opsdesk.services.change_feed import ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)

T = TypeVar("T")

# never leave the process in a change event
PRIVATE_COLUMNS = {"credentials", "hashed_password", "token_hash"}

MISSING_TABLE_RE = re.compile(
    r"no such table: (\w+)|relation \"?(\w+)\"? does not exist|Table '[\w.]*?(\w+)' doesn't exist",
    re.IGNORECASE,
)


def to_jsonable(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def primary_key(model):
    return inspect(model).primary_key[0]


def row_id(row) -> Any:
    return getattr(row, primary_key(type(row)).key)


def row_to_dict(row) -> dict[str, Any]:
    mapper = inspect(row).mapper
    return {
        col.key: to_jsonable(getattr(row, col.key))
        for col in mapper.column_attrs
        if col.key not in PRIVATE_COLUMNS
    }


class RecordStore:
    """Query/insert/update/delete against one SQLAlchemy session.

    Every committed write is published to ``feed``. Writes made inside
    ``transaction()`` commit (and publish) together.
    """

    def __init__(self, db: Session, feed: ChangeFeed | None = None):
        self.db = db
        self.feed = feed
        self._depth = 0
        self._pending: list[ChangeEvent] = []

    # ---------- errors ----------

    def _translate(self, exc: SQLAlchemyError, action: str) -> OpsError:
        text = str(getattr(exc, "orig", None) or exc)
        if isinstance(exc, (OperationalError, ProgrammingError)):
            m = MISSING_TABLE_RE.search(text)
            if m:
                table = next(g for g in m.groups() if g)
                logger.warning("table %s is not provisioned", table)
                return SchemaNotProvisioned(table)
        if isinstance(exc, IntegrityError):
            if "unique" in text.lower() or "duplicate" in text.lower():
                return DuplicateRecord(f"Duplicate value: {text}")
            return ValidationFailed(f"Rejected by the database: {text}")
        logger.error("store %s failed: %s", action, text)
        return RecordStoreError(f"Could not {action}. Nothing was changed.")

    # ---------- transactions ----------

    @contextmanager
    def transaction(self) -> Iterator["RecordStore"]:
        if self._depth:
            # join the outer unit of work
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        self._pending = []
        try:
            yield self
            self.db.commit()
        except OpsError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise self._translate(exc, "save changes") from exc
        finally:
            self._depth = 0
        events, self._pending = self._pending, []
        if self.feed is not None:
            for event in events:
                self.feed.publish(event)

    def _stage(self, event: ChangeEvent) -> None:
        self._pending.append(event)

    # ---------- reads ----------

    def query(self, model: type[T], *criteria, order_by=None, limit: int | None = None) -> list[T]:
        stmt = select(model).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(*order_by) if isinstance(order_by, (list, tuple)) else stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise self._translate(exc, f"load {model.__tablename__}") from exc

    def get(self, model: type[T], record_id: Any) -> T:
        try:
            row = self.db.get(model, record_id, populate_existing=True)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise self._translate(exc, f"load {model.__tablename__}") from exc
        if row is None:
            raise RecordNotFound(model.__tablename__, record_id)
        return row

    def find(self, model: type[T], record_id: Any) -> T | None:
        try:
            return self.get(model, record_id)
        except RecordNotFound:
            return None

    def count(self, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model).where(*criteria)
        try:
            return self.db.scalar(stmt) or 0
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise self._translate(exc, f"count {model.__tablename__}") from exc

    def count_by(self, model, column, *criteria) -> dict[Any, int]:
        stmt = select(column, func.count()).select_from(model).where(*criteria).group_by(column)
        try:
            return {key: n for key, n in self.db.execute(stmt).all()}
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise self._translate(exc, f"count {model.__tablename__}") from exc

    # ---------- writes ----------

    def insert(self, row: T) -> T:
        with self.transaction():
            self.db.add(row)
            self.db.flush()
            self._stage(ChangeEvent(row.__tablename__, "INSERT", row_id(row), row_to_dict(row)))
        return row

    def update_by_id(self, model: type[T], record_id: Any, values: dict[str, Any],
                     expected: dict[str, Any] | None = None) -> T:
        """Partial update of one row.

        ``expected`` adds column equalities to the WHERE clause; when they no
        longer hold, nothing is written and InvalidTransition is raised.
        """
        with self.transaction():
            stmt = update(model).where(primary_key(model) == record_id)
            for key, value in (expected or {}).items():
                stmt = stmt.where(getattr(model, key) == value)
            stmt = stmt.values(**values).execution_options(synchronize_session=False)
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                if self.db.get(model, record_id) is None:
                    raise RecordNotFound(model.__tablename__, record_id)
                raise InvalidTransition(
                    f"{model.__tablename__} #{record_id} was changed by someone else; reload and try again"
                )
            row = self.db.get(model, record_id, populate_existing=True)
            self._stage(ChangeEvent(model.__tablename__, "UPDATE", record_id, row_to_dict(row)))
        return row

    def delete_by_id(self, model: type[T], record_id: Any) -> None:
        with self.transaction():
            row = self.get(model, record_id)
            snapshot = row_to_dict(row)
            self.db.delete(row)
            self.db.flush()
            self._stage(ChangeEvent(model.__tablename__, "DELETE", record_id, snapshot))
