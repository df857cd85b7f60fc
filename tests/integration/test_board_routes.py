"""Integration tests for task board endpoints."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from ntask.api.deps import get_task_service
from ntask.graph.service import TaskService
from ntask.graph.store import DEFAULT_BOARD_ID
from ntask.main import app
from ntask.models.webhooks import WebhookEventType
from tests.fakes import RecordingNotifier


@pytest.fixture
def client(task_service: TaskService) -> Iterator[TestClient]:
    """Test client backed by a fresh in-memory board."""
    app.dependency_overrides[get_task_service] = lambda: task_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestBoards:
    def test_list_default_board(self, client: TestClient) -> None:
        response = client.get("/boards")

        assert response.status_code == 200
        data = response.json()
        assert [b["id"] for b in data["boards"]] == [DEFAULT_BOARD_ID]
        assert data["active_board_id"] == DEFAULT_BOARD_ID

    def test_create_and_activate_board(self, client: TestClient) -> None:
        created = client.post("/boards", json={"name": "Ops", "description": "Operations"})
        board_id = created.json()["id"]

        activated = client.put("/boards/active", json={"board_id": board_id})
        task = client.post("/tasks", json={"title": "Deploy"})

        assert created.status_code == 201
        assert activated.json()["active_board_id"] == board_id
        assert task.json()["board_id"] == board_id

    def test_activate_unknown_board(self, client: TestClient) -> None:
        response = client.put("/boards/active", json={"board_id": "board-missing"})

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_graph_view(self, client: TestClient) -> None:
        response = client.get(f"/boards/{DEFAULT_BOARD_ID}/graph", params={"selected": "SCRUM-5"})

        assert response.status_code == 200
        data = response.json()
        nodes = {n["id"]: n for n in data["nodes"]}
        assert nodes["SCRUM-2"]["level"] == 0
        assert nodes["SCRUM-5"]["level"] == 1
        assert nodes["SCRUM-5"]["highlighted"] is True
        assert [e["id"] for e in data["edges"]] == ["rel-2-5"]


class TestTasks:
    def test_create_get_edit_delete(self, client: TestClient) -> None:
        created = client.post(
            "/tasks", json={"title": "Write docs", "parent_id": "SCRUM-2", "assignee": "Minji"}
        )
        task_id = created.json()["id"]

        detail = client.get("/tasks/SCRUM-2").json()
        edited = client.put(f"/tasks/{task_id}", json={"title": "Write API docs"})
        deleted = client.delete(f"/tasks/{task_id}")
        missing = client.get(f"/tasks/{task_id}")

        assert created.status_code == 201
        assert task_id in [t["id"] for t in detail["subtasks"]]
        assert edited.json()["title"] == "Write API docs"
        assert deleted.status_code == 204
        assert missing.status_code == 404

    def test_blank_title_is_rejected(self, client: TestClient) -> None:
        response = client.post("/tasks", json={"title": "   "})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_done_notifies_assignee_and_fires_webhook(
        self, client: TestClient, notifier: RecordingNotifier
    ) -> None:
        response = client.post("/tasks/SCRUM-5/status", json={"status": "DONE", "actor": "Dohyun"})
        notes = client.get("/notifications", params={"user": "Gildong"})

        assert response.status_code == 200
        assert response.json()["status"] == "DONE"
        assert len(notes.json()) == 1
        assert "SCRUM-5" in notes.json()[0]["message"]
        assert len(notifier.of_type(WebhookEventType.task_completed)) == 1

    def test_invalid_status(self, client: TestClient) -> None:
        response = client.post("/tasks/SCRUM-5/status", json={"status": "BLOCKED"})

        assert response.status_code == 400

    def test_logs_and_importance(self, client: TestClient) -> None:
        log = client.post("/tasks/SCRUM-2/logs", json={"text": "API merged", "author": "Dohyun"})
        important = client.post("/tasks/SCRUM-2/important", json={"important": True})
        detail = client.get("/tasks/SCRUM-2").json()

        assert log.status_code == 201
        assert important.json()["is_important"] is True
        assert [entry["text"] for entry in detail["logs"]] == ["API merged"]

    def test_move_node(self, client: TestClient) -> None:
        response = client.put("/tasks/SCRUM-5/position", json={"x": 120, "y": 40})
        graph = client.get(f"/boards/{DEFAULT_BOARD_ID}/graph").json()

        assert response.json() == {"x": 120, "y": 40}
        node = next(n for n in graph["nodes"] if n["id"] == "SCRUM-5")
        assert (node["x"], node["y"]) == (120, 40)


class TestRelations:
    def test_cross_board_relation(self, client: TestClient) -> None:
        board_id = client.post("/boards", json={"name": "Ops"}).json()["id"]
        remote = client.post("/tasks", json={"title": "Deploy", "board_id": board_id}).json()

        relation = client.post(
            "/relations", json={"from_task_id": "SCRUM-2", "to_task_id": remote["id"]}
        )
        links = client.get("/tasks/SCRUM-2/cross-board")

        assert relation.status_code == 201
        assert relation.json()["type"] == "CROSS_BOARD"
        assert [link["board_name"] for link in links.json()] == ["Ops"]

        removed = client.delete(f"/relations/{relation.json()['id']}")
        assert removed.status_code == 204
        assert client.get("/tasks/SCRUM-2/cross-board").json() == []

    def test_remove_unknown_relation(self, client: TestClient) -> None:
        response = client.delete("/relations/rel-missing")

        assert response.status_code == 404


class TestNotifications:
    def test_requires_user(self, client: TestClient) -> None:
        response = client.get("/notifications")

        assert response.status_code == 400

    def test_important_only(self, client: TestClient) -> None:
        urgent = client.post("/tasks", json={"title": "Urgent", "assignee": "Minji"}).json()
        client.post("/tasks", json={"title": "Plain", "assignee": "Minji"})
        client.post(f"/tasks/{urgent['id']}/important", json={"important": True})

        everything = client.get("/notifications", params={"user": "Minji"}).json()
        important = client.get(
            "/notifications", params={"user": "Minji", "important_only": True}
        ).json()

        assert len(everything) == 2
        assert [n["task_id"] for n in important] == [urgent["id"]]
