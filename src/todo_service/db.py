from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Generator, List, Optional, Tuple

from .models import ChangeEvent, Deleted, OperationType, Saved, TodoEntity
from .repositories import (
    ChangeEventRepository,
    Clock,
    ListQuery,
    Repository,
    new_id,
    parse_sort,
)
from .schemas import TodoCreate, TodoUpdate


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    uid: str = "uid"
    title: str = "title"
    content: str = "content"
    completed: str = "completed"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


@dataclass(frozen=True)
class _EventCols:
    table: str = "todo_change_events"
    seq: str = "seq"
    id: str = "id"
    todo_id: str = "todo_id"
    uid: str = "uid"
    operation_type: str = "operation_type"
    title: str = "title"
    content: str = "content"
    completed: str = "completed"
    created_at: str = "created_at"
    todo_created_at: str = "todo_created_at"
    todo_updated_at: str = "todo_updated_at"


_COLS = _Cols()
_EVENT_COLS = _EventCols()


@contextmanager
def _connect(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def _ensure_dir(db_path: str) -> None:
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.

    Timestamps are stored as ISO-8601 text and `completed` as 0/1, so the
    document passed to `Deleted` listeners carries those raw column values.
    """

    def __init__(self, db_path: str, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        _ensure_dir(db_path)
        self._db_path = db_path
        self._init_db()

    def _conn(self):
        return _connect(self._db_path)

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.uid} TEXT NOT NULL,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.content} TEXT NOT NULL,
                    {_COLS.completed} INTEGER NOT NULL DEFAULT 0,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_uid_created_at "
                f"ON {_COLS.table}({_COLS.uid}, {_COLS.created_at})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_updated_at ON {_COLS.table}({_COLS.updated_at})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": str(row[_COLS.id]),
            "uid": str(row[_COLS.uid]),
            "title": str(row[_COLS.title]),
            "content": str(row[_COLS.content]),
            "completed": bool(row[_COLS.completed]),
            "created_at": datetime.fromisoformat(row[_COLS.created_at]),
            "updated_at": datetime.fromisoformat(row[_COLS.updated_at]),
        }

    def _select(self, conn: sqlite3.Connection, todo_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,)).fetchone()

    def create(self, data: TodoCreate) -> TodoEntity:
        now = self._now().isoformat()
        todo_id = new_id()
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.uid}, {_COLS.title}, {_COLS.content},
                    {_COLS.completed}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (todo_id, data.uid, data.title, data.content, 1 if data.completed else 0, now, now),
            )
            row = self._select(conn, todo_id)
            assert row is not None
            entity = self._row_to_entity(row)
        self._notify(Saved(entity))
        return entity

    def get(self, todo_id: str) -> Optional[TodoEntity]:
        with self._conn() as conn:
            row = self._select(conn, todo_id)
            return self._row_to_entity(row) if row else None

    def update(self, todo_id: str, data: TodoUpdate) -> Optional[TodoEntity]:
        with self._conn() as conn:
            row = self._select(conn, todo_id)
            if not row:
                return None
            current = self._row_to_entity(row)

            title = data.title if data.title is not None else current["title"]
            content = data.content if data.content is not None else current["content"]
            completed = data.completed if data.completed is not None else current["completed"]
            conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.content} = ?, {_COLS.completed} = ?, {_COLS.updated_at} = ?
                WHERE {_COLS.id} = ?
                """,
                (title, content, 1 if completed else 0, self._now().isoformat(), todo_id),
            )
            row2 = self._select(conn, todo_id)
            assert row2 is not None
            entity = self._row_to_entity(row2)
        self._notify(Saved(entity))
        return entity

    def delete(self, todo_id: str) -> bool:
        with self._conn() as conn:
            row = self._select(conn, todo_id)
            if not row:
                return False
            document: Dict[str, Any] = dict(row)
            conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,))
        self._notify(Deleted(document))
        return True

    def list(self, query: Optional[ListQuery] = None) -> Tuple[List[TodoEntity], int]:
        q = query or ListQuery()
        clauses = []
        params: list = []

        if q.completed is not None:
            clauses.append(f"{_COLS.completed} = ?")
            params.append(1 if q.completed else 0)

        if q.uid is not None:
            clauses.append(f"{_COLS.uid} = ?")
            params.append(q.uid)

        if q.search:
            # LIKE is case-insensitive for ASCII in SQLite
            clauses.append(f"({_COLS.title} LIKE ? OR {_COLS.content} LIKE ?)")
            like = f"%{q.search}%"
            params.extend([like, like])

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        field, reverse = parse_sort(q.sort)
        order_sql = f"ORDER BY {field} {'DESC' if reverse else 'ASC'}"

        with self._conn() as conn:
            count_row = conn.execute(
                f"SELECT COUNT(*) as cnt FROM {_COLS.table} {where_sql}", params
            ).fetchone()
            total = int(count_row["cnt"]) if count_row else 0

            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                {where_sql}
                {order_sql}
                LIMIT ? OFFSET ?
                """,
                [*params, max(q.limit, 0), max(q.offset, 0)],
            ).fetchall()
            return [self._row_to_entity(r) for r in rows], total

    def delete_all(self) -> None:
        with self._conn() as conn:
            conn.execute(f"DELETE FROM {_COLS.table}")


class SQLiteChangeEventRepository(ChangeEventRepository):
    """
    SQLite change event store. `seq` preserves insertion order for every query.
    """

    def __init__(self, db_path: str) -> None:
        _ensure_dir(db_path)
        self._db_path = db_path
        self._init_db()

    def _conn(self):
        return _connect(self._db_path)

    def _init_db(self) -> None:
        c = _EVENT_COLS
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {c.table} (
                    {c.seq} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {c.id} TEXT NOT NULL UNIQUE,
                    {c.todo_id} TEXT NOT NULL,
                    {c.uid} TEXT NOT NULL,
                    {c.operation_type} TEXT NOT NULL,
                    {c.title} TEXT NOT NULL,
                    {c.content} TEXT NOT NULL,
                    {c.completed} INTEGER NOT NULL,
                    {c.created_at} TEXT NOT NULL,
                    {c.todo_created_at} TEXT NOT NULL,
                    {c.todo_updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{c.table}_todo_id ON {c.table}({c.todo_id})")
            conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{c.table}_uid ON {c.table}({c.uid})")

    def _row_to_event(self, row: sqlite3.Row) -> ChangeEvent:
        c = _EVENT_COLS
        return ChangeEvent(
            id=str(row[c.id]),
            todo_id=str(row[c.todo_id]),
            uid=str(row[c.uid]),
            operation_type=OperationType(row[c.operation_type]),
            title=str(row[c.title]),
            content=str(row[c.content]),
            completed=bool(row[c.completed]),
            created_at=datetime.fromisoformat(row[c.created_at]),
            todo_created_at=datetime.fromisoformat(row[c.todo_created_at]),
            todo_updated_at=datetime.fromisoformat(row[c.todo_updated_at]),
        )

    def _select(self, where_sql: str = "", params: tuple = ()) -> List[ChangeEvent]:
        c = _EVENT_COLS
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT * FROM {c.table} {where_sql} ORDER BY {c.seq} ASC", params
            ).fetchall()
            return [self._row_to_event(r) for r in rows]

    def insert(self, event: ChangeEvent) -> ChangeEvent:
        c = _EVENT_COLS
        event_id = new_id()
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {c.table} ({c.id}, {c.todo_id}, {c.uid}, {c.operation_type}, {c.title},
                    {c.content}, {c.completed}, {c.created_at}, {c.todo_created_at}, {c.todo_updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event_id,
                    event.todo_id,
                    event.uid,
                    event.operation_type.value,
                    event.title,
                    event.content,
                    1 if event.completed else 0,
                    event.created_at.isoformat(),
                    event.todo_created_at.isoformat(),
                    event.todo_updated_at.isoformat(),
                ),
            )
        return replace(event, id=event_id)

    def get(self, event_id: str) -> Optional[ChangeEvent]:
        found = self._select(f"WHERE {_EVENT_COLS.id} = ?", (event_id,))
        return found[0] if found else None

    def find_all(self) -> List[ChangeEvent]:
        return self._select()

    def find_by_todo_id(self, todo_id: str) -> List[ChangeEvent]:
        return self._select(f"WHERE {_EVENT_COLS.todo_id} = ?", (todo_id,))

    def find_by_uid(self, uid: str) -> List[ChangeEvent]:
        return self._select(f"WHERE {_EVENT_COLS.uid} = ?", (uid,))

    def delete_all(self) -> None:
        with self._conn() as conn:
            conn.execute(f"DELETE FROM {_EVENT_COLS.table}")
