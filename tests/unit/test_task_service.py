"""Unit tests for task board operations."""

import pytest

from ntask.errors import NotFoundError, PersistenceError, ValidationError
from ntask.graph.service import DEFAULT_DESCRIPTION, TaskService
from ntask.graph.store import DEFAULT_BOARD_ID, BoardStore
from ntask.models.board import TaskRelationType, TaskStatus
from ntask.models.documents import DocumentRequest
from ntask.models.notifications import NotificationType
from ntask.models.webhooks import WebhookEventType
from tests.fakes import FIXED_NOW, FailingStorage, RecordingNotifier


class TestCreateAndEdit:
    def test_create_task_defaults(self, task_service: TaskService) -> None:
        task = task_service.create_task(DEFAULT_BOARD_ID, "  Write docs  ")

        assert task.id.startswith("TASK-")
        assert task.title == "Write docs"
        assert task.description == DEFAULT_DESCRIPTION
        assert task.status == TaskStatus.TODO
        assert task_service.state.task(task.id) is not None

    def test_create_task_ids_are_unique(self, task_service: TaskService) -> None:
        first = task_service.create_task(DEFAULT_BOARD_ID, "One")
        second = task_service.create_task(DEFAULT_BOARD_ID, "Two")
        assert first.id != second.id

    def test_blank_title_rejected(self, task_service: TaskService) -> None:
        with pytest.raises(ValidationError):
            task_service.create_task(DEFAULT_BOARD_ID, "   ")

    def test_unknown_board_rejected(self, task_service: TaskService) -> None:
        with pytest.raises(NotFoundError):
            task_service.create_task("board-missing", "Task")

    def test_create_under_parent_adds_subtask_edge(self, task_service: TaskService) -> None:
        child = task_service.create_task(DEFAULT_BOARD_ID, "Child", parent_id="SCRUM-5")

        assert [t.id for t in task_service.subtasks("SCRUM-5")] == [child.id]

    def test_create_with_assignee_notifies(self, task_service: TaskService) -> None:
        task = task_service.create_task(DEFAULT_BOARD_ID, "Review", assignee="Minji")

        notes = task_service.notifications_for("Minji")
        assert len(notes) == 1
        assert notes[0].task_id == task.id
        assert "assigned" in notes[0].message

    def test_parent_on_other_board_becomes_cross_board(self, task_service: TaskService) -> None:
        other = task_service.create_board("Ops")
        task = task_service.create_task(other.id, "Deploy", parent_id="SCRUM-2")

        relation = next(r for r in task_service.state.relations if r.to_task_id == task.id)
        assert relation.type == TaskRelationType.CROSS_BOARD
        assert relation.from_board_id == DEFAULT_BOARD_ID
        assert relation.to_board_id == other.id

    def test_edit_replaces_parent_but_keeps_related(self, task_service: TaskService) -> None:
        extra = task_service.create_task(DEFAULT_BOARD_ID, "Extra")
        task_service.add_relation(extra.id, "SCRUM-5", TaskRelationType.RELATED)

        task_service.edit_task("SCRUM-5", title="Prototype", parent_id=extra.id)

        incoming = [r for r in task_service.state.relations if r.to_task_id == "SCRUM-5"]
        assert {(r.from_task_id, r.type) for r in incoming} == {
            (extra.id, TaskRelationType.SUBTASK),
            (extra.id, TaskRelationType.RELATED),
        }

    def test_edit_rejects_self_parent(self, task_service: TaskService) -> None:
        with pytest.raises(ValidationError):
            task_service.edit_task("SCRUM-5", title="Loop", parent_id="SCRUM-5")

    def test_reassignment_notifies_new_assignee_only(self, task_service: TaskService) -> None:
        task_service.edit_task("SCRUM-5", title="Prototype", assignee="Minji")
        task_service.edit_task("SCRUM-5", title="Prototype v2", assignee="Minji")

        assert len(task_service.notifications_for("Minji")) == 1
        assert task_service.notifications_for("Gildong") == []


class TestChangeStatus:
    """DONE produces exactly one notification for the assignee and one webhook."""

    @pytest.mark.asyncio
    async def test_done_with_assignee_notifies_once(
        self, task_service: TaskService, notifier: RecordingNotifier
    ) -> None:
        await task_service.change_status("SCRUM-5", TaskStatus.DONE, actor="Dohyun")

        notes = task_service.notifications_for("Gildong")
        assert len(notes) == 1
        assert notes[0].type == NotificationType.task
        assert notes[0].message == '"Prototype the task service" (ID: SCRUM-5) has been completed.'
        assert len(task_service.state.notifications) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [TaskStatus.TODO, TaskStatus.IN_PROGRESS])
    async def test_other_status_does_not_notify(
        self, task_service: TaskService, notifier: RecordingNotifier, status: TaskStatus
    ) -> None:
        await task_service.change_status("SCRUM-5", status)

        assert task_service.state.notifications == []
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_done_without_assignee_still_fires_webhook(
        self, task_service: TaskService, notifier: RecordingNotifier
    ) -> None:
        task = task_service.create_task(DEFAULT_BOARD_ID, "Unowned")

        await task_service.change_status(task.id, TaskStatus.DONE)

        assert task_service.state.notifications == []
        assert len(notifier.of_type(WebhookEventType.task_completed)) == 1

    @pytest.mark.asyncio
    async def test_completion_payload(
        self, task_service: TaskService, notifier: RecordingNotifier
    ) -> None:
        related = task_service.create_task(DEFAULT_BOARD_ID, "Docs")
        task_service.add_relation("SCRUM-2", related.id, TaskRelationType.RELATED)
        log = task_service.add_log("SCRUM-2", "API merged", author="Dohyun")

        await task_service.change_status("SCRUM-2", TaskStatus.DONE, actor="Dohyun")

        (event,) = notifier.events
        assert event.event == WebhookEventType.task_completed
        assert event.timestamp == FIXED_NOW
        data = event.data
        assert data["taskId"] == "SCRUM-2"
        assert data["status"] == "DONE"
        assert data["assignee"] == "Dohyun"
        assert data["actor"] == "Dohyun"
        assert data["app"] == "N-TASK"
        assert data["subTaskIds"] == ["SCRUM-5"]
        assert data["relatedTaskIds"] == [related.id]
        assert [entry["id"] for entry in data["logs"]] == [log.id]

    @pytest.mark.asyncio
    async def test_unknown_task(self, task_service: TaskService) -> None:
        with pytest.raises(NotFoundError):
            await task_service.change_status("NOPE-1", TaskStatus.DONE)

    @pytest.mark.asyncio
    async def test_persistence_failure_skips_side_effects(
        self, notifier: RecordingNotifier
    ) -> None:
        service = TaskService(BoardStore(FailingStorage()), notifier)

        with pytest.raises(PersistenceError):
            await service.change_status("SCRUM-5", TaskStatus.DONE)

        assert service.get_task("SCRUM-5").status == TaskStatus.TODO
        assert notifier.events == []


class TestDelete:
    def test_delete_cascades_relations_logs_and_position(self, task_service: TaskService) -> None:
        keeper = task_service.create_task(DEFAULT_BOARD_ID, "Keeper")
        task_service.add_relation(keeper.id, "SCRUM-2", TaskRelationType.RELATED)
        task_service.add_log("SCRUM-5", "started")
        keeper_log = task_service.add_log(keeper.id, "kept")
        task_service.move_node("SCRUM-5", 10, 20)

        task_service.delete_task("SCRUM-5")

        state = task_service.state
        assert state.task("SCRUM-5") is None
        assert all("SCRUM-5" not in (r.from_task_id, r.to_task_id) for r in state.relations)
        assert "SCRUM-5" not in state.logs
        assert "SCRUM-5" not in state.positions
        assert [r.to_task_id for r in state.relations] == ["SCRUM-2"]
        assert state.logs[keeper.id] == [keeper_log]

    def test_delete_unknown(self, task_service: TaskService) -> None:
        with pytest.raises(NotFoundError):
            task_service.delete_task("NOPE-1")


class TestLogsRelationsBoards:
    def test_logs_newest_first(self, task_service: TaskService) -> None:
        first = task_service.add_log("SCRUM-2", "first")
        second = task_service.add_log("SCRUM-2", "second")
        assert task_service.logs_for("SCRUM-2") == [second, first]

    def test_blank_log_rejected(self, task_service: TaskService) -> None:
        with pytest.raises(ValidationError):
            task_service.add_log("SCRUM-2", " ")

    def test_relation_needs_two_tasks(self, task_service: TaskService) -> None:
        with pytest.raises(ValidationError):
            task_service.add_relation("SCRUM-2", "SCRUM-2", TaskRelationType.RELATED)

    def test_remove_relation(self, task_service: TaskService) -> None:
        task_service.remove_relation("rel-2-5")
        assert task_service.state.relations == []
        with pytest.raises(NotFoundError):
            task_service.remove_relation("rel-2-5")

    def test_cross_board_links(self, task_service: TaskService) -> None:
        other = task_service.create_board("Ops")
        remote = task_service.create_task(other.id, "Deploy")
        relation = task_service.add_relation("SCRUM-2", remote.id, TaskRelationType.RELATED)

        links = task_service.cross_board_links("SCRUM-2")

        assert relation.type == TaskRelationType.CROSS_BOARD
        assert [(link.task_id, link.board_name) for link in links] == [(remote.id, "Ops")]
        view = task_service.graph_view(DEFAULT_BOARD_ID)
        assert relation.id not in {e.id for e in view.edges}

    def test_set_active_board(self, task_service: TaskService) -> None:
        other = task_service.create_board("Ops", "Operations")
        task_service.set_active_board(other.id)

        assert task_service.active_board_id() == other.id
        with pytest.raises(NotFoundError):
            task_service.set_active_board("board-missing")

    def test_important_filter(self, task_service: TaskService) -> None:
        task_service.create_task(DEFAULT_BOARD_ID, "Plain", assignee="Minji")
        urgent = task_service.create_task(DEFAULT_BOARD_ID, "Urgent", assignee="Minji")
        task_service.set_important(urgent.id, True)

        important = task_service.notifications_for("Minji", important_only=True)

        assert [n.task_id for n in important] == [urgent.id]
        assert len(task_service.notifications_for("Minji")) == 2

    def test_graph_view_highlights_selection(self, task_service: TaskService) -> None:
        lonely = task_service.create_task(DEFAULT_BOARD_ID, "Lonely")

        view = task_service.graph_view(DEFAULT_BOARD_ID, selected_id="SCRUM-2")

        nodes = {n.id: n for n in view.nodes}
        assert nodes["SCRUM-2"].highlighted and nodes["SCRUM-5"].highlighted
        assert nodes[lonely.id].dimmed
        assert nodes["SCRUM-5"].level == 1

    def test_document_request_notification(self, task_service: TaskService) -> None:
        request = DocumentRequest(
            id="req-1",
            requester_email="kim@co",
            keyword="project plan",
            approver_email="lee@co",
        )

        note = task_service.push_document_request_notification("lee@co", request)

        assert note.type == NotificationType.document_request
        assert note.document_request == request
        assert task_service.notifications_for("lee@co")[0].id == note.id
