from datetime import datetime


def create_todo_payload(uid="user123", title="Test Task", content="Do something", completed=False):
    return {"uid": uid, "title": title, "content": content, "completed": completed}


def assert_todo_shape(todo: dict):
    for key in ["id", "uid", "title", "content", "completed", "created_at", "updated_at"]:
        assert key in todo
    assert isinstance(todo["id"], str)
    assert isinstance(todo["title"], str)
    assert isinstance(todo["completed"], bool)
    # FastAPI/Pydantic returns strings for datetime fields
    datetime.fromisoformat(todo["created_at"])
    datetime.fromisoformat(todo["updated_at"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["backend"] == "memory"


class TestTodosCRUD:
    def test_create_todo(self, client):
        res = client.post("/api/v1/todos/", json=create_todo_payload(title="  Buy milk  "))
        assert res.status_code == 201
        todo = res.json()
        assert_todo_shape(todo)
        assert todo["title"] == "Buy milk"
        assert todo["uid"] == "user123"
        assert todo["completed"] is False
        assert todo["created_at"] == todo["updated_at"]

    def test_get_todo_and_not_found(self, client):
        tid = client.post("/api/v1/todos/", json=create_todo_payload(title="Read book")).json()["id"]

        res_get = client.get(f"/api/v1/todos/{tid}")
        assert res_get.status_code == 200
        fetched = res_get.json()
        assert fetched["id"] == tid
        assert fetched["title"] == "Read book"

        res_404 = client.get("/api/v1/todos/does-not-exist")
        assert res_404.status_code == 404
        assert res_404.json()["detail"] == "Todo not found"
        assert res_404.json()["error"] == "NotFound"

    def test_put_replace_todo(self, client):
        created = client.post("/api/v1/todos/", json=create_todo_payload(title="Initial", content="A")).json()
        tid = created["id"]

        res_put = client.put(
            f"/api/v1/todos/{tid}", json={"title": "Replaced", "content": "B", "completed": True}
        )
        assert res_put.status_code == 200
        updated = res_put.json()
        assert updated["id"] == tid
        assert updated["uid"] == "user123"
        assert updated["title"] == "Replaced"
        assert updated["content"] == "B"
        assert updated["completed"] is True
        assert updated["created_at"] == created["created_at"]
        assert datetime.fromisoformat(updated["updated_at"]) > datetime.fromisoformat(updated["created_at"])

        res_put_nf = client.put(
            "/api/v1/todos/424242", json={"title": "Replaced", "content": "B", "completed": True}
        )
        assert res_put_nf.status_code == 404
        assert res_put_nf.json()["detail"] == "Todo not found"

    def test_put_requires_all_fields(self, client):
        tid = client.post("/api/v1/todos/", json=create_todo_payload()).json()["id"]
        res = client.put(f"/api/v1/todos/{tid}", json={"title": "Only title"})
        assert res.status_code == 422

    def test_patch_partial_update(self, client):
        tid = client.post("/api/v1/todos/", json=create_todo_payload(title="Partial", content="X")).json()["id"]

        res_patch = client.patch(f"/api/v1/todos/{tid}", json={"title": "Partial Updated", "completed": True})
        assert res_patch.status_code == 200
        patched = res_patch.json()
        assert patched["id"] == tid
        assert patched["title"] == "Partial Updated"
        assert patched["completed"] is True
        # content should remain unchanged
        assert patched["content"] == "X"

        res_patch_nf = client.patch("/api/v1/todos/123456", json={"title": "Nope"})
        assert res_patch_nf.status_code == 404
        assert res_patch_nf.json()["detail"] == "Todo not found"

    def test_patch_ignores_uid(self, client):
        tid = client.post("/api/v1/todos/", json=create_todo_payload(uid="owner")).json()["id"]
        res = client.patch(f"/api/v1/todos/{tid}", json={"uid": "someone-else", "title": "Mine"})
        assert res.status_code == 200
        assert res.json()["uid"] == "owner"

    def test_delete_todo(self, client):
        tid = client.post("/api/v1/todos/", json=create_todo_payload(title="ToDelete")).json()["id"]

        res_del = client.delete(f"/api/v1/todos/{tid}")
        assert res_del.status_code == 204
        assert res_del.text == ""

        assert client.get(f"/api/v1/todos/{tid}").status_code == 404
        res_del_again = client.delete(f"/api/v1/todos/{tid}")
        assert res_del_again.status_code == 404
        assert res_del_again.json()["detail"] == "Todo not found"


class TestListPaginationFilteringSorting:
    def seed_todos(self, client, count=10, uid="user123"):
        created_ids = []
        for i in range(count):
            payload = create_todo_payload(
                uid=uid,
                title=f"Task {i}",
                content=f"Desc {i}",
                completed=(i % 2 == 0),
            )
            res = client.post("/api/v1/todos/", json=payload)
            assert res.status_code == 201
            created_ids.append(res.json()["id"])
        return created_ids

    def test_list_basic_pagination(self, client):
        ids = self.seed_todos(client, 7)

        page1 = client.get("/api/v1/todos/?limit=3&offset=0&sort=created_at").json()
        assert page1["total"] == 7
        assert page1["limit"] == 3
        assert page1["offset"] == 0
        assert [t["id"] for t in page1["items"]] == ids[:3]

        page3 = client.get("/api/v1/todos/?limit=3&offset=6&sort=created_at").json()
        assert page3["offset"] == 6
        assert [t["id"] for t in page3["items"]] == ids[6:]

    def test_list_filter_completed_true_false(self, client):
        self.seed_todos(client, 6)  # completed for even indices

        data_true = client.get("/api/v1/todos/?completed=true&limit=100").json()
        assert data_true["total"] == 3
        assert all(item["completed"] is True for item in data_true["items"])

        data_false = client.get("/api/v1/todos/?completed=false&limit=100").json()
        assert data_false["total"] == 3
        assert all(item["completed"] is False for item in data_false["items"])

    def test_list_filter_uid(self, client):
        self.seed_todos(client, 2, uid="alice")
        self.seed_todos(client, 3, uid="bob")

        data = client.get("/api/v1/todos/?uid=bob&limit=100").json()
        assert data["total"] == 3
        assert {item["uid"] for item in data["items"]} == {"bob"}

    def test_list_search_q_matches_title_and_content(self, client):
        self.seed_todos(client, 5)

        data_title = client.get("/api/v1/todos/?q=task 1&limit=100").json()
        assert [item["title"] for item in data_title["items"]] == ["Task 1"]

        data_content = client.get("/api/v1/todos/?q=Desc 2&limit=100").json()
        assert [item["content"] for item in data_content["items"]] == ["Desc 2"]

    def test_list_sort_and_order(self, client):
        self.seed_todos(client, 5)

        default_items = client.get("/api/v1/todos/?limit=5").json()["items"]
        created_ts = [datetime.fromisoformat(t["created_at"]) for t in default_items]
        assert created_ts == sorted(created_ts, reverse=True)

        items_asc = client.get("/api/v1/todos/?sort=created_at&limit=5").json()["items"]
        created_ts_asc = [datetime.fromisoformat(t["created_at"]) for t in items_asc]
        assert created_ts_asc == sorted(created_ts_asc)

        items_desc = client.get("/api/v1/todos/?sort=created_at&order=desc&limit=5").json()["items"]
        assert [t["id"] for t in items_desc] == [t["id"] for t in reversed(items_asc)]

    def test_list_unknown_sort_falls_back_to_newest_first(self, client):
        self.seed_todos(client, 3)

        newest_first = client.get("/api/v1/todos/?limit=3").json()["items"]
        by_title = client.get("/api/v1/todos/?sort=title&limit=3").json()["items"]
        assert [t["id"] for t in by_title] == [t["id"] for t in newest_first]

        by_title_asc = client.get("/api/v1/todos/?sort=-title&order=asc&limit=3").json()["items"]
        assert [t["id"] for t in by_title_asc] == [t["id"] for t in reversed(newest_first)]

    def test_list_order_overrides_sort_direction(self, client):
        first = self.seed_todos(client, 3)[0]
        client.patch(f"/api/v1/todos/{first}", json={"completed": True})

        recent = client.get("/api/v1/todos/?sort=updated_at&order=desc&limit=3").json()["items"]
        assert recent[0]["id"] == first

        oldest = client.get("/api/v1/todos/?sort=-updated_at&order=asc&limit=3").json()["items"]
        assert oldest[-1]["id"] == first

    def test_list_invalid_order_param(self, client):
        res = client.get("/api/v1/todos/?order=invalid")
        assert res.status_code == 400
        assert res.json()["detail"] == "order must be 'asc' or 'desc'"


class TestValidationErrors:
    def test_create_validation_error_title_blank(self, client):
        res = client.post("/api/v1/todos/", json={"uid": "u1", "title": "  ", "content": "x"})
        assert res.status_code == 422
        body = res.json()
        assert body.get("error") == "ValidationError"
        assert body.get("message") == "Request validation failed"
        assert isinstance(body.get("detail"), list)
        assert "title" in body["errors"]

    def test_create_validation_error_missing_fields(self, client):
        res = client.post("/api/v1/todos/", json={"title": "No owner"})
        assert res.status_code == 422
        errors = res.json()["errors"]
        assert "uid" in errors
        assert "content" in errors

    def test_patch_validation_error_bad_completed(self, client):
        tid = client.post("/api/v1/todos/", json=create_todo_payload()).json()["id"]
        res = client.patch(f"/api/v1/todos/{tid}", json={"completed": "not-a-bool"})
        assert res.status_code == 422
        assert res.json()["error"] == "ValidationError"
        assert "completed" in res.json()["errors"]
