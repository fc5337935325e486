from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from threading import RLock
from typing import Callable, Iterable, List, Optional, Tuple

from .models import ChangeEvent, Deleted, LifecycleEvent, Saved, TodoEntity, TodoListener
from .schemas import TodoCreate, TodoUpdate
from .settings import Settings

Clock = Callable[[], datetime]


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing todos.
    """
    limit: int = 50
    offset: int = 0
    completed: Optional[bool] = None
    uid: Optional[str] = None
    search: Optional[str] = None
    sort: str = "-created_at"  # allowed: created_at, -created_at, updated_at, -updated_at


def parse_sort(sort: Optional[str]) -> Tuple[str, bool]:
    """Return (field, descending) for a sort key. Unknown keys sort newest first by created_at."""
    key = sort.strip().lower() if sort else "-created_at"
    reverse = key.startswith("-")
    field = key[1:] if reverse else key
    if field not in {"created_at", "updated_at"}:
        return "created_at", True
    return field, reverse


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract repository contract for todo storage backends.

    Registered listeners are called synchronously after every committed write
    (`Saved`) or delete (`Deleted`), in registration order.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or datetime.now
        self._listeners: List[TodoListener] = []

    def add_listener(self, listener: TodoListener) -> None:
        """Register a callable receiving lifecycle events for this repository."""
        self._listeners.append(listener)

    def _notify(self, event: LifecycleEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _now(self) -> datetime:
        return self._clock()

    @abstractmethod
    def create(self, data: TodoCreate) -> TodoEntity:
        """Create and return a new TodoEntity."""

    @abstractmethod
    def get(self, todo_id: str) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    def update(self, todo_id: str, data: TodoUpdate) -> Optional[TodoEntity]:
        """Update fields of an existing TodoEntity. Return updated entity or None if not found."""

    @abstractmethod
    def delete(self, todo_id: str) -> bool:
        """Delete a TodoEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, query: Optional[ListQuery] = None) -> Tuple[List[TodoEntity], int]:
        """
        Return a slice of TodoEntities and total count matching filters.
        - Supports limit/offset
        - Filter by completed and by owning uid
        - Substring search across title and content (case-insensitive)
        - Sorting by created_at/updated_at (asc/desc)
        """

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every todo without firing lifecycle events. Used by tests."""


# PUBLIC_INTERFACE
class ChangeEventRepository(ABC):
    """Append-only store for change events. Queries return insertion order."""

    @abstractmethod
    def insert(self, event: ChangeEvent) -> ChangeEvent:
        """Persist a new event and return it with its generated id."""

    @abstractmethod
    def get(self, event_id: str) -> Optional[ChangeEvent]:
        """Return one event by id, or None."""

    @abstractmethod
    def find_all(self) -> List[ChangeEvent]:
        """Return every stored event."""

    @abstractmethod
    def find_by_todo_id(self, todo_id: str) -> List[ChangeEvent]:
        """Return events recorded for one todo."""

    @abstractmethod
    def find_by_uid(self, uid: str) -> List[ChangeEvent]:
        """Return events recorded for one user."""

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every event. Used by tests."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._lock = RLock()
        self._items: dict[str, TodoEntity] = {}

    def create(self, data: TodoCreate) -> TodoEntity:
        now = self._now()
        entity: TodoEntity = {
            "id": new_id(),
            "uid": data.uid,
            "title": data.title,
            "content": data.content,
            "completed": data.completed,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        self._notify(Saved(entity.copy()))
        return entity.copy()

    def get(self, todo_id: str) -> Optional[TodoEntity]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else item.copy()

    def update(self, todo_id: str, data: TodoUpdate) -> Optional[TodoEntity]:
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                return None

            # Update only provided fields
            updated = existing.copy()
            if data.title is not None:
                updated["title"] = data.title
            if data.content is not None:
                updated["content"] = data.content
            if data.completed is not None:
                updated["completed"] = data.completed
            updated["updated_at"] = self._now()

            self._items[todo_id] = updated
        self._notify(Saved(updated.copy()))
        return updated.copy()

    def delete(self, todo_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(todo_id, None)
        if removed is None:
            return False
        self._notify(Deleted(dict(removed)))
        return True

    def list(self, query: Optional[ListQuery] = None) -> Tuple[List[TodoEntity], int]:
        q = query or ListQuery()
        with self._lock:
            items: Iterable[TodoEntity] = list(self._items.values())

            # Filtering
            if q.completed is not None:
                items = [t for t in items if t["completed"] == q.completed]

            if q.uid is not None:
                items = [t for t in items if t["uid"] == q.uid]

            if q.search:
                s = q.search.lower()
                items = [t for t in items if s in t["title"].lower() or s in t["content"].lower()]

            items = list(items)
            total = len(items)

            field, reverse = parse_sort(q.sort)
            items_sorted = sorted(items, key=lambda t: t[field], reverse=reverse)  # type: ignore[literal-required]

            # Pagination
            start = max(q.offset, 0)
            end = start + max(q.limit, 0)
            page = items_sorted[start:end]

            # Return copies to avoid external mutation
            return [t.copy() for t in page], total

    def delete_all(self) -> None:
        with self._lock:
            self._items.clear()


class InMemoryChangeEventRepository(ChangeEventRepository):
    """
    Thread-safe in-memory change event store. Events are immutable, so no copies are needed.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._events: List[ChangeEvent] = []

    def insert(self, event: ChangeEvent) -> ChangeEvent:
        stored = replace(event, id=new_id())
        with self._lock:
            self._events.append(stored)
        return stored

    def get(self, event_id: str) -> Optional[ChangeEvent]:
        with self._lock:
            return next((e for e in self._events if e.id == event_id), None)

    def find_all(self) -> List[ChangeEvent]:
        with self._lock:
            return list(self._events)

    def find_by_todo_id(self, todo_id: str) -> List[ChangeEvent]:
        with self._lock:
            return [e for e in self._events if e.todo_id == todo_id]

    def find_by_uid(self, uid: str) -> List[ChangeEvent]:
        with self._lock:
            return [e for e in self._events if e.uid == uid]

    def delete_all(self) -> None:
        with self._lock:
            self._events.clear()


# PUBLIC_INTERFACE
def get_repository(settings: Settings, clock: Optional[Clock] = None) -> Repository:
    """
    Factory to return the configured todo repository based on settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path, clock=clock)
    return InMemoryRepository(clock=clock)


# PUBLIC_INTERFACE
def get_change_event_repository(settings: Settings) -> ChangeEventRepository:
    """
    Factory to return the configured change event store based on settings.
    The sqlite store shares its database file with the todo table.
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteChangeEventRepository

        return SQLiteChangeEventRepository(settings.sqlite_db_path)
    return InMemoryChangeEventRepository()
