from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..dependencies import get_change_event_service
from ..models import OperationType
from ..schemas import ChangeEventOut
from ..services import ChangeEventService
from ..utils import to_change_event_out

router = APIRouter(
    prefix="/api/v1/todo-changes",
    tags=["todo-changes"],
)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[ChangeEventOut],
    summary="List Change Events",
    description="Return every recorded change event in storage order.",
)
def list_change_events(service: ChangeEventService = Depends(get_change_event_service)) -> List[ChangeEventOut]:
    return [to_change_event_out(e) for e in service.find_all()]


# PUBLIC_INTERFACE
@router.get(
    "/todo/{todo_id}",
    response_model=List[ChangeEventOut],
    summary="Change Events of a Todo",
    description="Return the change events recorded for one todo, including deleted todos.",
)
def list_by_todo(
    todo_id: str, service: ChangeEventService = Depends(get_change_event_service)
) -> List[ChangeEventOut]:
    return [to_change_event_out(e) for e in service.find_by_todo_id(todo_id)]


# PUBLIC_INTERFACE
@router.get(
    "/user/{uid}",
    response_model=List[ChangeEventOut],
    summary="Change Events of a User",
    description="Return the change events recorded for todos owned by one user.",
)
def list_by_user(uid: str, service: ChangeEventService = Depends(get_change_event_service)) -> List[ChangeEventOut]:
    return [to_change_event_out(e) for e in service.find_by_uid(uid)]


# PUBLIC_INTERFACE
@router.get(
    "/operation/{operation_type}",
    response_model=List[ChangeEventOut],
    summary="Change Events by Operation",
    description="Return the change events of one operation type: CREATE, UPDATE or DELETE.",
)
def list_by_operation(
    operation_type: OperationType, service: ChangeEventService = Depends(get_change_event_service)
) -> List[ChangeEventOut]:
    return [to_change_event_out(e) for e in service.find_by_operation_type(operation_type)]


# PUBLIC_INTERFACE
@router.get(
    "/history/{todo_id}",
    response_model=List[ChangeEventOut],
    summary="Change History of a Todo",
    description="Return the change events of one todo ordered by the time they were recorded, oldest first.",
)
def change_history(
    todo_id: str, service: ChangeEventService = Depends(get_change_event_service)
) -> List[ChangeEventOut]:
    return [to_change_event_out(e) for e in service.get_change_history(todo_id)]


# PUBLIC_INTERFACE
@router.get(
    "/{event_id}",
    response_model=ChangeEventOut,
    summary="Get Change Event",
    description="Get a single change event by ID.",
    responses={404: {"description": "Change event not found"}},
)
def get_change_event(event_id: str, service: ChangeEventService = Depends(get_change_event_service)) -> ChangeEventOut:
    return to_change_event_out(service.get(event_id))
