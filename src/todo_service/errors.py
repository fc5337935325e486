from __future__ import annotations


class NotFoundError(Exception):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message)
        self.message = message


class TodoNotFoundError(NotFoundError):
    def __init__(self, todo_id: str) -> None:
        super().__init__("Todo not found")
        self.todo_id = todo_id


class ChangeEventNotFoundError(NotFoundError):
    def __init__(self, event_id: str) -> None:
        super().__init__("Change event not found")
        self.event_id = event_id


class ChangeEventError(Exception):
    """Base class for failures while recording a change event."""


class InvalidDocumentError(ChangeEventError):
    """A deleted document is missing a field or carries a field of the wrong type."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Cannot build change event: field '{field}' {reason}")
        self.field = field
        self.reason = reason


class ChangeEventPersistError(ChangeEventError):
    """The change event store rejected or failed the insert."""

    def __init__(self, todo_id: str, operation_type: str) -> None:
        super().__init__(f"Failed to record {operation_type} change event for todo {todo_id}")
        self.todo_id = todo_id
        self.operation_type = operation_type
