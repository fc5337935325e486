from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import OperationType


def _require_text(value: str, name: str) -> str:
    """
    Strip whitespace and reject blank values.
    """
    s = value.strip()
    if not s:
        raise ValueError(f"{name} must not be blank")
    return s


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "uid": "user123",
                "title": "Buy groceries",
                "content": "Milk, eggs, bread",
                "completed": False,
            }
        }
    )

    uid: str = Field(..., description="Identifier of the owning user", min_length=1, max_length=100)
    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    content: str = Field(..., description="Body text of the todo item", min_length=1)
    completed: bool = Field(default=False, description="Completion status flag")

    @field_validator("uid")
    @classmethod
    def validate_uid(cls, v: str) -> str:
        return _require_text(v, "uid")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _require_text(v, "title")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _require_text(v, "content")


# PUBLIC_INTERFACE
class TodoReplace(BaseModel):
    """
    Schema for replacing the mutable fields of a Todo item (PUT).
    The owning user cannot be changed.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "content": "Milk, eggs, bread, and paper towels",
                "completed": True,
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    content: str = Field(..., description="Body text of the todo item", min_length=1)
    completed: bool = Field(..., description="Completion status flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _require_text(v, "title")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _require_text(v, "content")


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided fields will be updated.
    """

    title: Optional[str] = Field(default=None, description="Short title for the todo item", min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, description="Body text of the todo item", min_length=1)
    completed: Optional[bool] = Field(default=None, description="Completion status flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _require_text(v, "title")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _require_text(v, "content")


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f9c2a0b6d1e4c8f9a7b5e2d1c0f4a6b",
                "uid": "user123",
                "title": "Buy groceries",
                "content": "Milk, eggs, bread",
                "completed": False,
                "created_at": "2025-01-25T10:15:30.123456",
                "updated_at": "2025-01-26T09:00:00.000001",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the todo item")
    uid: str = Field(..., description="Identifier of the owning user")
    title: str = Field(..., description="Short title for the todo item")
    content: str = Field(..., description="Body text of the todo item")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class ChangeEventOut(BaseModel):
    """
    Schema returned by the API for a recorded change event.
    """

    id: str = Field(..., description="Unique identifier of the change event")
    todo_id: str = Field(..., description="Identifier of the todo that changed")
    uid: str = Field(..., description="Owning user of the todo at the time of the change")
    operation_type: OperationType = Field(..., description="CREATE, UPDATE or DELETE")
    title: str = Field(..., description="Todo title at the time of the change")
    content: str = Field(..., description="Todo content at the time of the change")
    completed: bool = Field(..., description="Todo completion flag at the time of the change")
    created_at: datetime = Field(..., description="When the change event was recorded")
    todo_created_at: datetime = Field(..., description="Creation timestamp of the todo")
    todo_updated_at: datetime = Field(..., description="Last update timestamp of the todo")
