from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from todo_service.db import SQLiteChangeEventRepository, SQLiteRepository
from todo_service.listeners import TodoChangeListener
from todo_service.main import create_app
from todo_service.models import Deleted, OperationType
from todo_service.repositories import ListQuery
from todo_service.schemas import TodoCreate, TodoUpdate
from todo_service.settings import Settings


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "data" / "todos.db")


@pytest.fixture
def sqlite_client(db_path, clock):
    settings = Settings(persistence_backend="sqlite", sqlite_db_path=db_path, log_format="console")
    return TestClient(create_app(settings, clock=clock))


class TestSQLiteRepository:
    def test_crud_and_listing(self, db_path, clock):
        repo = SQLiteRepository(db_path, clock=clock)
        first = repo.create(TodoCreate(uid="alice", title="Alpha", content="first"))
        second = repo.create(TodoCreate(uid="bob", title="Beta", content="second", completed=True))

        assert repo.get(first["id"]) == first
        assert isinstance(first["created_at"], datetime)

        items, total = repo.list(ListQuery(sort="created_at"))
        assert total == 2
        assert [t["id"] for t in items] == [first["id"], second["id"]]

        items, total = repo.list(ListQuery(uid="bob"))
        assert total == 1 and items[0]["id"] == second["id"]

        items, total = repo.list(ListQuery(search="alp"))
        assert [t["id"] for t in items] == [first["id"]]

        updated = repo.update(first["id"], TodoUpdate(content="changed"))
        assert updated["content"] == "changed"
        assert updated["title"] == "Alpha"
        assert updated["updated_at"] > updated["created_at"]

        assert repo.delete(first["id"]) is True
        assert repo.get(first["id"]) is None
        assert repo.delete(first["id"]) is False

    def test_delete_passes_raw_row_to_listeners(self, db_path, clock):
        repo = SQLiteRepository(db_path, clock=clock)
        seen = []
        repo.add_listener(lambda event: seen.append(event) if isinstance(event, Deleted) else None)

        todo = repo.create(TodoCreate(uid="u1", title="A", content="Body", completed=True))
        repo.delete(todo["id"])

        [deleted] = seen
        assert deleted.document["id"] == todo["id"]
        assert deleted.document["completed"] == 1
        assert deleted.document["created_at"] == todo["created_at"].isoformat()


class TestSQLiteChangeCapture:
    def test_events_survive_reopening_the_database(self, db_path, clock):
        repo = SQLiteRepository(db_path, clock=clock)
        repo.add_listener(TodoChangeListener(SQLiteChangeEventRepository(db_path), clock=clock))
        todo = repo.create(TodoCreate(uid="u1", title="A", content="Body"))
        repo.update(todo["id"], TodoUpdate(title="B", completed=True))
        repo.delete(todo["id"])

        reopened = SQLiteChangeEventRepository(db_path)
        events = reopened.find_by_todo_id(todo["id"])
        assert [e.operation_type for e in events] == [
            OperationType.CREATE,
            OperationType.UPDATE,
            OperationType.DELETE,
        ]
        delete = events[2]
        assert delete.title == "B"
        assert delete.completed is True
        assert delete.todo_created_at == todo["created_at"]
        assert reopened.get(delete.id) == delete

        reopened.delete_all()
        assert reopened.find_all() == []

    def test_api_scenario(self, sqlite_client):
        res = sqlite_client.post(
            "/api/v1/todos/", json={"uid": "u1", "title": "A", "content": "Body", "completed": False}
        )
        tid = res.json()["id"]
        sqlite_client.put(f"/api/v1/todos/{tid}", json={"title": "B", "content": "Body", "completed": True})
        sqlite_client.delete(f"/api/v1/todos/{tid}")

        history = sqlite_client.get(f"/api/v1/todo-changes/history/{tid}").json()
        assert [e["operation_type"] for e in history] == ["CREATE", "UPDATE", "DELETE"]
        assert history[1]["title"] == "B"
        assert history[1]["completed"] is True
        assert sqlite_client.get("/").json()["backend"] == "sqlite"
