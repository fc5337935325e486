from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional, TypedDict, Union


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a Todo item.

    Fields:
    - id: Opaque identifier generated by the storage backend
    - uid: Owning user identifier, fixed at creation
    - title: Short title (trimmed on input via schemas)
    - content: Body text of the todo
    - completed: Boolean completion flag
    - created_at: Creation timestamp, never changed afterwards
    - updated_at: Last update timestamp; equal to created_at until the first update
    """

    id: str
    uid: str
    title: str
    content: str
    completed: bool
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class OperationType(str, Enum):
    """Kind of mutation recorded by a change event."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ChangeEvent:
    """
    Immutable snapshot of a todo at the moment it was created, updated or deleted.

    The snapshot is held by value, so an event stays valid after its todo is gone.
    `id` is None until the change event store assigns one on insert.
    """

    todo_id: str
    uid: str
    operation_type: OperationType
    title: str
    content: str
    completed: bool
    created_at: datetime
    todo_created_at: datetime
    todo_updated_at: datetime
    id: Optional[str] = None


@dataclass(frozen=True)
class Saved:
    """Fired after a todo write is committed; carries the entity as stored."""

    entity: TodoEntity


@dataclass(frozen=True)
class Deleted:
    """Fired after a todo is removed; carries the raw stored document read before removal."""

    document: Mapping[str, Any]


LifecycleEvent = Union[Saved, Deleted]
TodoListener = Callable[[LifecycleEvent], None]
