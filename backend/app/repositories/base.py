from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Literal, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import OperationCancelledError, ResourceNotFoundError, TransientStoreError
from app.db.base import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
RecordT = TypeVar("RecordT", bound=BaseModel)

ChangeKind = Literal["created", "updated", "deleted"]


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    collection: str
    record_id: str
    record: BaseModel | None = None


ChangeListener = Callable[[ChangeEvent], None]

_CANCEL_MARKERS = ("cancel", "interrupt", "abort")


def _is_cancellation(exc: DBAPIError) -> bool:
    if exc.connection_invalidated:
        return True
    message = str(exc.orig or exc).lower()
    return any(marker in message for marker in _CANCEL_MARKERS)


class SqlRepository(Generic[ModelT, RecordT]):
    """The five-operation collection contract over one SQLAlchemy model.

    Every mutation commits a single record, so any operation can be retried
    by invoking it again. Subclasses bind ``model`` and ``record_type``.
    """

    model: ClassVar[type[Base]]
    record_type: ClassVar[type[BaseModel]]
    collection: ClassVar[str]

    def __init__(self, db: Session, listeners: Iterable[ChangeListener] = ()) -> None:
        self.db = db
        self._listeners: list[ChangeListener] = list(listeners)

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def list(self, *criteria: Any, order_by: Any = None) -> list[RecordT]:
        statement = select(self.model)
        if criteria:
            statement = statement.where(*criteria)
        if order_by is not None:
            statement = statement.order_by(order_by)
        with self._store_call("list"):
            rows = self.db.execute(statement).scalars().all()
        return [self._to_record(row) for row in rows]

    def list_by(self, **equals: Any) -> list[RecordT]:
        criteria = [getattr(self.model, field) == value for field, value in equals.items()]
        return self.list(*criteria)

    def find_by_id(self, record_id: str) -> RecordT | None:
        with self._store_call("find_by_id"):
            row = self.db.get(self.model, record_id)
        if row is None:
            return None
        return self._to_record(row)

    def create(self, data: BaseModel | dict) -> RecordT:
        values = data.model_dump() if isinstance(data, BaseModel) else dict(data)
        values.pop("id", None)
        row = self.model(**values)
        with self._store_call("create"):
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        record = self._to_record(row)
        self._emit(ChangeEvent("created", self.collection, record.id, record))
        return record

    def update(self, record_id: str, partial: BaseModel | dict) -> RecordT:
        values = partial.model_dump(exclude_unset=True) if isinstance(partial, BaseModel) else dict(partial)
        with self._store_call("update"):
            row = self.db.get(self.model, record_id)
            if row is None:
                raise ResourceNotFoundError(self.collection, record_id)
            for key, value in values.items():
                if key == "id":
                    continue
                setattr(row, key, value)
            self.db.commit()
            self.db.refresh(row)
        record = self._to_record(row)
        self._emit(ChangeEvent("updated", self.collection, record.id, record))
        return record

    def delete(self, record_id: str) -> None:
        with self._store_call("delete"):
            row = self.db.get(self.model, record_id)
            if row is None:
                raise ResourceNotFoundError(self.collection, record_id)
            self.db.delete(row)
            self.db.commit()
        self._emit(ChangeEvent("deleted", self.collection, record_id))

    def _to_record(self, row: ModelT) -> RecordT:
        return self.record_type.model_validate(row)

    def _emit(self, event: ChangeEvent) -> None:
        for listener in self._listeners:
            listener(event)

    @contextmanager
    def _store_call(self, operation: str) -> Iterator[None]:
        try:
            yield
        except DBAPIError as exc:
            self.db.rollback()
            details = {"collection": self.collection, "operation": operation}
            if _is_cancellation(exc):
                logger.info("%s.%s was cancelled by the store", self.collection, operation)
                raise OperationCancelledError(f"{self.collection}.{operation} was cancelled", details) from exc
            if isinstance(exc, OperationalError):
                logger.warning("%s.%s failed transiently: %s", self.collection, operation, exc)
                raise TransientStoreError(f"{self.collection}.{operation} failed", details) from exc
            raise
