from __future__ import annotations

from fastapi import Request

from .services import ChangeEventService, TodoService


def get_todo_service(request: Request) -> TodoService:
    """
    Dependency returning the TodoService wired by create_app.
    """
    return request.app.state.todo_service


def get_change_event_service(request: Request) -> ChangeEventService:
    """
    Dependency returning the ChangeEventService wired by create_app.
    """
    return request.app.state.change_event_service
