from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..dependencies import get_todo_service
from ..repositories import ListQuery, parse_sort
from ..schemas import TodoCreate, TodoOut, TodoReplace, TodoUpdate
from ..services import TodoService
from ..utils import pagination_envelope

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)


class PaginationEnvelope(BaseModel):
    """
    Envelope for paginated list responses.
    """
    items: List[TodoOut] = Field(..., description="List of Todo items")
    total: int = Field(..., description="Total number of items matching the query")
    limit: int = Field(..., description="Limit applied to the query")
    offset: int = Field(..., description="Offset applied to the query")


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource. Records a CREATE change event.",
    responses={
        201: {"description": "Todo created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_todo(payload: TodoCreate, service: TodoService = Depends(get_todo_service)) -> TodoOut:
    """
    Create a new Todo.
    """
    return TodoOut(**service.create(payload))


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=PaginationEnvelope,
    summary="List Todos",
    description=(
        "List todos with optional filters and pagination.\n\n"
        "Query parameters:\n"
        "- limit: max number of items to return (0..1000)\n"
        "- offset: number of items to skip (>=0)\n"
        "- completed: filter by completion status\n"
        "- uid: filter by owning user\n"
        "- q: search query for title/content (substring match)\n"
        "- sort: one of created_at, -created_at, updated_at, -updated_at\n"
        "- order: asc or desc (if provided, it overrides the direction in sort)"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid query parameters"},
    },
)
def list_todos(
    limit: int = Query(50, ge=0, le=1000, description="Maximum number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    uid: Optional[str] = Query(None, description="Filter by owning user"),
    q: Optional[str] = Query(None, description="Search text for title/content"),
    sort: Optional[str] = Query(
        "-created_at",
        description="Sort by field: created_at, -created_at, updated_at, -updated_at",
    ),
    order: Optional[str] = Query(None, description="Override sort direction: 'asc' or 'desc'"),
    service: TodoService = Depends(get_todo_service),
) -> PaginationEnvelope:
    """
    List todos with pagination and filters.
    """
    normalized_sort = sort or "-created_at"
    if order:
        ord_norm = order.strip().lower()
        if ord_norm not in {"asc", "desc"}:
            raise HTTPException(status_code=400, detail="order must be 'asc' or 'desc'")
        field, _ = parse_sort(sort)
        normalized_sort = f"-{field}" if ord_norm == "desc" else field

    query = ListQuery(
        limit=limit,
        offset=offset,
        completed=completed,
        uid=uid,
        search=q.strip() if q else None,
        sort=normalized_sort,
    )
    items, total = service.list(query)
    envelope = pagination_envelope(
        items=[TodoOut(**it) for it in items],
        total=total,
        limit=limit,
        offset=offset,
    )
    return PaginationEnvelope(**envelope)


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={
        200: {"description": "Todo found"},
        404: {"description": "Todo not found"},
    },
)
def get_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    return TodoOut(**service.get(todo_id))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Replace Todo",
    description="Replace title, content and completion status of an existing Todo item.",
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def put_todo(todo_id: str, payload: TodoReplace, service: TodoService = Depends(get_todo_service)) -> TodoOut:
    """
    Full update of the mutable fields, recorded as an UPDATE change event.
    """
    update = TodoUpdate(title=payload.title, content=payload.content, completed=payload.completed)
    return TodoOut(**service.update(todo_id, update))


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Update Todo",
    description="Partially update fields of a Todo item.",
    responses={
        200: {"description": "Todo updated"},
        404: {"description": "Todo not found"},
    },
)
def patch_todo(todo_id: str, payload: TodoUpdate, service: TodoService = Depends(get_todo_service)) -> TodoOut:
    """
    Partial update of a Todo item.
    """
    return TodoOut(**service.update(todo_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Todo",
    description="Delete a Todo item by ID. Records a DELETE change event.",
    responses={
        204: {"description": "Todo deleted"},
        404: {"description": "Todo not found"},
    },
)
def delete_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> None:
    """
    Delete a Todo. Returns 204 on success, 404 if not found.
    """
    service.delete(todo_id)
