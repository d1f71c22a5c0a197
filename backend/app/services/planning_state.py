"""Local mirror of the planning collections.

State transitions are pure: ``reduce(state, action)`` returns a new
``PlanningState`` and never mutates the old one. Optimistic inserts are kept
in a ledger keyed by a generated correlation id until the store confirms or
rejects them. The same ids drive the staleness check for superseded loads.
"""
from __future__ import annotations

import logging
import uuid
from threading import Lock
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Literal, Mapping, Union

from app.repositories.base import ChangeEvent
from app.schemas.lesson import LessonOut
from app.schemas.yearly_lesson import YearlyLessonOut

logger = logging.getLogger(__name__)

Collection = Literal["yearly_lessons", "lessons"]
Record = Union[YearlyLessonOut, LessonOut]


def new_correlation_id() -> str:
    return f"op-{uuid.uuid4()}"


@dataclass(frozen=True)
class PendingOperation:
    correlation_id: str
    collection: Collection
    placeholder: Record


@dataclass(frozen=True)
class PlanningState:
    yearly_lessons: tuple[YearlyLessonOut, ...] = ()
    lessons: tuple[LessonOut, ...] = ()
    pending: Mapping[str, PendingOperation] = field(default_factory=lambda: MappingProxyType({}))
    current_requests: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def is_current(self, request_key: str, correlation_id: str) -> bool:
        return self.current_requests.get(request_key) == correlation_id


@dataclass(frozen=True)
class RequestStarted:
    request_key: str
    correlation_id: str


@dataclass(frozen=True)
class RecordsLoaded:
    collection: Collection
    records: tuple[Record, ...]
    request_key: str | None = None
    correlation_id: str | None = None


@dataclass(frozen=True)
class RecordUpserted:
    collection: Collection
    record: Record


@dataclass(frozen=True)
class RecordRemoved:
    collection: Collection
    record_id: str


@dataclass(frozen=True)
class OptimisticInsert:
    correlation_id: str
    collection: Collection
    placeholder: Record


@dataclass(frozen=True)
class OptimisticConfirmed:
    correlation_id: str
    record: Record


@dataclass(frozen=True)
class OptimisticDiscarded:
    correlation_id: str


Action = Union[
    RequestStarted,
    RecordsLoaded,
    RecordUpserted,
    RecordRemoved,
    OptimisticInsert,
    OptimisticConfirmed,
    OptimisticDiscarded,
]


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(mapping)


def _records(state: PlanningState, collection: Collection) -> tuple[Record, ...]:
    return state.yearly_lessons if collection == "yearly_lessons" else state.lessons


def _with_records(state: PlanningState, collection: Collection, records: tuple[Record, ...]) -> PlanningState:
    if collection == "yearly_lessons":
        return replace(state, yearly_lessons=records)
    return replace(state, lessons=records)


def _upsert(records: tuple[Record, ...], record: Record) -> tuple[Record, ...]:
    if any(item.id == record.id for item in records):
        return tuple(record if item.id == record.id else item for item in records)
    return (*records, record)


def _remove(records: tuple[Record, ...], record_id: str) -> tuple[Record, ...]:
    return tuple(item for item in records if item.id != record_id)


def reduce(state: PlanningState, action: Action) -> PlanningState:
    if isinstance(action, RequestStarted):
        requests = dict(state.current_requests)
        requests[action.request_key] = action.correlation_id
        return replace(state, current_requests=_frozen(requests))

    if isinstance(action, RecordsLoaded):
        if action.request_key is not None and not state.is_current(action.request_key, action.correlation_id or ""):
            logger.debug("Dropping stale %s load for %s", action.collection, action.request_key)
            return state
        # placeholders survive a reload until their own confirmation arrives
        placeholders = tuple(
            op.placeholder for op in state.pending.values() if op.collection == action.collection
        )
        return _with_records(state, action.collection, (*action.records, *placeholders))

    if isinstance(action, RecordUpserted):
        return _with_records(state, action.collection, _upsert(_records(state, action.collection), action.record))

    if isinstance(action, RecordRemoved):
        return _with_records(state, action.collection, _remove(_records(state, action.collection), action.record_id))

    if isinstance(action, OptimisticInsert):
        pending = dict(state.pending)
        pending[action.correlation_id] = PendingOperation(action.correlation_id, action.collection, action.placeholder)
        records = _upsert(_records(state, action.collection), action.placeholder)
        return _with_records(replace(state, pending=_frozen(pending)), action.collection, records)

    if isinstance(action, OptimisticConfirmed):
        operation = state.pending.get(action.correlation_id)
        if operation is None:
            return state
        pending = dict(state.pending)
        del pending[action.correlation_id]
        records = _remove(_records(state, operation.collection), operation.placeholder.id)
        records = _upsert(records, action.record)
        return _with_records(replace(state, pending=_frozen(pending)), operation.collection, records)

    if isinstance(action, OptimisticDiscarded):
        operation = state.pending.get(action.correlation_id)
        if operation is None:
            return state
        pending = dict(state.pending)
        del pending[action.correlation_id]
        records = _remove(_records(state, operation.collection), operation.placeholder.id)
        return _with_records(replace(state, pending=_frozen(pending)), operation.collection, records)

    raise TypeError(f"Unsupported planning action: {action!r}")


class PlanningStore:
    """Holds the current ``PlanningState`` and applies actions to it."""

    def __init__(self, state: PlanningState | None = None) -> None:
        self.state = state or PlanningState()
        self._lock = Lock()

    def dispatch(self, action: Action) -> PlanningState:
        with self._lock:
            self.state = reduce(self.state, action)
            return self.state

    def begin_request(self, request_key: str) -> str:
        correlation_id = new_correlation_id()
        self.dispatch(RequestStarted(request_key, correlation_id))
        return correlation_id

    def is_current(self, request_key: str, correlation_id: str) -> bool:
        return self.state.is_current(request_key, correlation_id)

    def load(self, collection: Collection, records, *, request_key: str, correlation_id: str) -> bool:
        """Replace the mirrored collection unless a newer request for ``request_key`` started meanwhile."""
        self.dispatch(RecordsLoaded(collection, tuple(records), request_key, correlation_id))
        return self.is_current(request_key, correlation_id)

    def begin_insert(self, collection: Collection, placeholder_factory) -> str:
        correlation_id = new_correlation_id()
        self.dispatch(OptimisticInsert(correlation_id, collection, placeholder_factory(correlation_id)))
        return correlation_id

    def confirm(self, correlation_id: str, record: Record) -> None:
        self.dispatch(OptimisticConfirmed(correlation_id, record))

    def discard(self, correlation_id: str) -> None:
        self.dispatch(OptimisticDiscarded(correlation_id))

    def on_change(self, event: ChangeEvent) -> None:
        """Repository listener keeping the mirror in line with confirmed writes."""
        if event.collection not in ("yearly_lessons", "lessons"):
            return
        if event.kind == "deleted":
            self.dispatch(RecordRemoved(event.collection, event.record_id))
        elif event.record is not None:
            self.dispatch(RecordUpserted(event.collection, event.record))

    def summary(self) -> dict[str, int]:
        state = self.state
        return {
            "yearly_lessons": len(state.yearly_lessons),
            "lessons": len(state.lessons),
            "pending": len(state.pending),
        }


_store = PlanningStore()


def get_planning_store() -> PlanningStore:
    return _store
