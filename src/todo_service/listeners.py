"""
Change capture for todos.

`TodoChangeListener` is registered on a todo `Repository` and turns each
lifecycle event into exactly one `ChangeEvent` in the change event store.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Tuple, Type, Union

from .errors import ChangeEventError, ChangeEventPersistError, InvalidDocumentError
from .logging import get_logger
from .models import ChangeEvent, Deleted, LifecycleEvent, OperationType, Saved, TodoEntity
from .repositories import ChangeEventRepository

logger = get_logger(__name__)


# PUBLIC_INTERFACE
def classify_operation(todo: TodoEntity) -> OperationType:
    """
    Classify a committed write as CREATE or UPDATE.

    A todo whose updated_at still equals created_at has never been modified.
    The comparison is exact: an update that leaves updated_at equal to
    created_at is reported as CREATE.
    """
    if todo["updated_at"] == todo["created_at"]:
        return OperationType.CREATE
    return OperationType.UPDATE


# PUBLIC_INTERFACE
def change_event_from_todo(
    todo: TodoEntity, operation_type: OperationType, recorded_at: datetime
) -> ChangeEvent:
    """Snapshot a committed todo into a new, not yet persisted, change event."""
    return ChangeEvent(
        todo_id=todo["id"],
        uid=todo["uid"],
        operation_type=operation_type,
        title=todo["title"],
        content=todo["content"],
        completed=todo["completed"],
        created_at=recorded_at,
        todo_created_at=todo["created_at"],
        todo_updated_at=todo["updated_at"],
    )


def _field(document: Mapping[str, Any], name: str, types: Union[Type, Tuple[Type, ...]]) -> Any:
    if name not in document or document[name] is None:
        raise InvalidDocumentError(name, "is missing")
    value = document[name]
    if not isinstance(value, types):
        raise InvalidDocumentError(name, f"has unexpected type {type(value).__name__}")
    return value


def _bool_field(document: Mapping[str, Any], name: str) -> bool:
    value = _field(document, name, (bool, int))
    if not isinstance(value, bool) and value not in (0, 1):
        raise InvalidDocumentError(name, f"has unexpected value {value!r}")
    return bool(value)


def _datetime_field(document: Mapping[str, Any], name: str) -> datetime:
    value = _field(document, name, (datetime, str))
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise InvalidDocumentError(name, f"is not an ISO-8601 timestamp: {value!r}") from e


# PUBLIC_INTERFACE
def change_event_from_document(document: Mapping[str, Any], recorded_at: datetime) -> ChangeEvent:
    """
    Rebuild a DELETE change event from the raw stored document of a removed todo.

    Accepts the storage representations of each field (`completed` as bool or
    0/1, timestamps as datetime or ISO-8601 text).

    Raises:
        InvalidDocumentError: a field is missing or has an unexpected type.
    """
    return ChangeEvent(
        todo_id=_field(document, "id", str),
        uid=_field(document, "uid", str),
        operation_type=OperationType.DELETE,
        title=_field(document, "title", str),
        content=_field(document, "content", str),
        completed=_bool_field(document, "completed"),
        created_at=recorded_at,
        todo_created_at=_datetime_field(document, "created_at"),
        todo_updated_at=_datetime_field(document, "updated_at"),
    )


# PUBLIC_INTERFACE
class TodoChangeListener:
    """
    Records a change event for every lifecycle event of a todo repository.

    By default a failure to build or store the event is logged and dropped:
    the todo write is already committed and its result stands. With
    `strict=True` the failure is logged and re-raised to the code that
    mutated the todo.
    """

    def __init__(
        self,
        store: ChangeEventRepository,
        clock: Optional[Callable[[], datetime]] = None,
        strict: bool = False,
    ) -> None:
        self._store = store
        self._clock = clock or datetime.now
        self._strict = strict

    def __call__(self, event: LifecycleEvent) -> None:
        try:
            self._record(self._build(event))
        except ChangeEventError as e:
            logger.error(
                "change_event_failed" if self._strict else "change_event_dropped",
                error_type=type(e).__name__,
                error=str(e),
            )
            if self._strict:
                raise

    def _build(self, event: LifecycleEvent) -> ChangeEvent:
        if isinstance(event, Saved):
            return change_event_from_todo(event.entity, classify_operation(event.entity), self._clock())
        if isinstance(event, Deleted):
            return change_event_from_document(event.document, self._clock())
        raise TypeError(f"Unsupported lifecycle event: {event!r}")

    def _record(self, change: ChangeEvent) -> ChangeEvent:
        try:
            stored = self._store.insert(change)
        except Exception as e:
            logger.exception(
                "change_event_persist_failed",
                todo_id=change.todo_id,
                operation_type=change.operation_type.value,
            )
            raise ChangeEventPersistError(change.todo_id, change.operation_type.value) from e
        logger.info(
            "change_event_recorded",
            event_id=stored.id,
            todo_id=stored.todo_id,
            uid=stored.uid,
            operation_type=stored.operation_type.value,
        )
        return stored
