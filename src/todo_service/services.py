from __future__ import annotations

from typing import List, Optional, Tuple

from .errors import ChangeEventNotFoundError, TodoNotFoundError
from .models import ChangeEvent, OperationType, TodoEntity
from .repositories import ChangeEventRepository, ListQuery, Repository
from .schemas import TodoCreate, TodoUpdate


# PUBLIC_INTERFACE
class TodoService:
    """CRUD operations on todos. Unknown ids raise TodoNotFoundError."""

    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    def create(self, data: TodoCreate) -> TodoEntity:
        return self.repository.create(data)

    def get(self, todo_id: str) -> TodoEntity:
        todo = self.repository.get(todo_id)
        if todo is None:
            raise TodoNotFoundError(todo_id)
        return todo

    def list(self, query: Optional[ListQuery] = None) -> Tuple[List[TodoEntity], int]:
        return self.repository.list(query)

    def update(self, todo_id: str, data: TodoUpdate) -> TodoEntity:
        updated = self.repository.update(todo_id, data)
        if updated is None:
            raise TodoNotFoundError(todo_id)
        return updated

    def delete(self, todo_id: str) -> None:
        if not self.repository.delete(todo_id):
            raise TodoNotFoundError(todo_id)


# PUBLIC_INTERFACE
class ChangeEventService:
    """
    Read-only queries over recorded change events.

    Unless stated otherwise results keep the store's natural (insertion) order.
    """

    def __init__(self, store: ChangeEventRepository) -> None:
        self.store = store

    def find_all(self) -> List[ChangeEvent]:
        return self.store.find_all()

    def get(self, event_id: str) -> ChangeEvent:
        event = self.store.get(event_id)
        if event is None:
            raise ChangeEventNotFoundError(event_id)
        return event

    def find_by_todo_id(self, todo_id: str) -> List[ChangeEvent]:
        return self.store.find_by_todo_id(todo_id)

    def find_by_uid(self, uid: str) -> List[ChangeEvent]:
        return self.store.find_by_uid(uid)

    def find_by_operation_type(self, operation_type: OperationType) -> List[ChangeEvent]:
        """Filter every stored event by operation type. Linear in the size of the store."""
        return [e for e in self.store.find_all() if e.operation_type == operation_type]

    def get_change_history(self, todo_id: str) -> List[ChangeEvent]:
        """Events of one todo, oldest first by the time each event was recorded."""
        return sorted(self.store.find_by_todo_id(todo_id), key=lambda e: e.created_at)
