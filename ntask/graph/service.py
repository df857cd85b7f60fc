"""Task board operations: mutations, status propagation and notifications."""

import logging
import time
import uuid
from collections.abc import Callable, Container
from datetime import datetime

from ntask.adapters.webhook import WebhookNotifier
from ntask.errors import NotFoundError, ValidationError
from ntask.graph.layout import neighbor_ids
from ntask.graph.store import BoardSnapshot, BoardStore
from ntask.graph.view import CrossBoardLink, GraphView, build_graph_view, cross_board_links
from ntask.models.board import (
    Board,
    NodePosition,
    Task,
    TaskLog,
    TaskRelation,
    TaskRelationType,
    TaskStatus,
)
from ntask.models.common import utcnow
from ntask.models.documents import DocumentRequest
from ntask.models.notifications import Notification, NotificationType
from ntask.models.webhooks import LogEntry, TaskCompletedPayload

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "(no description)"

COMPLETED_MESSAGE = '"{title}" (ID: {task_id}) has been completed.'
ASSIGNED_MESSAGE = 'You have been assigned "{title}" (ID: {task_id}).'
REASSIGNED_MESSAGE = '"{title}" (ID: {task_id}) has been reassigned to you.'
DOCUMENT_REQUEST_MESSAGE = 'New document request from {requester}: "{keyword}"'


def _time_based_id(prefix: str, taken: Container[str]) -> str:
    """``<prefix>-<epoch ms>``, bumped until unused."""
    stamp = time.time_ns() // 1_000_000
    candidate = f"{prefix}-{stamp}"
    while candidate in taken:
        stamp += 1
        candidate = f"{prefix}-{stamp}"
    return candidate


def _require_task(state: BoardSnapshot, task_id: str) -> Task:
    task = state.task(task_id)
    if task is None:
        raise NotFoundError(f"Task not found: {task_id}")
    return task


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class TaskService:
    """All task board operations.

    Mutations commit through :meth:`BoardStore.transaction` before any
    notification or webhook is dispatched.
    """

    def __init__(
        self,
        store: BoardStore,
        notifier: WebhookNotifier,
        *,
        app_name: str = "N-TASK",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._app_name = app_name
        self._clock = clock

    @property
    def state(self) -> BoardSnapshot:
        return self._store.state

    # ---- boards ----

    def list_boards(self) -> list[Board]:
        return list(self.state.boards)

    def create_board(self, name: str, description: str | None = None) -> Board:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Board name is required")

        with self._store.transaction() as state:
            board = Board(
                id=_time_based_id("board", {b.id for b in state.boards}),
                name=name,
                description=_clean(description),
            )
            state.boards.append(board)
            if state.active_board_id is None:
                state.active_board_id = board.id
        return board

    def set_active_board(self, board_id: str) -> None:
        with self._store.transaction() as state:
            if state.board(board_id) is None:
                raise NotFoundError(f"Board not found: {board_id}")
            state.active_board_id = board_id

    def active_board_id(self) -> str | None:
        return self.state.active_board_id

    # ---- queries ----

    def get_task(self, task_id: str) -> Task:
        return _require_task(self.state, task_id)

    def logs_for(self, task_id: str) -> list[TaskLog]:
        _require_task(self.state, task_id)
        return list(self.state.logs.get(task_id, []))

    def subtasks(self, task_id: str) -> list[Task]:
        """Direct SUBTASK children."""
        child_ids = {
            rel.to_task_id
            for rel in self.state.relations
            if rel.type == TaskRelationType.SUBTASK and rel.from_task_id == task_id
        }
        return [t for t in self.state.tasks if t.id in child_ids]

    def related_tasks(self, task_id: str) -> list[Task]:
        """Tasks joined by a RELATED edge in either direction."""
        related = [r for r in self.state.relations if r.type == TaskRelationType.RELATED]
        ids = neighbor_ids(task_id, related)
        return [t for t in self.state.tasks if t.id in ids]

    def graph_view(self, board_id: str | None = None, selected_id: str | None = None) -> GraphView:
        board_id = board_id or self.state.active_board_id
        if board_id is None or self.state.board(board_id) is None:
            raise NotFoundError(f"Board not found: {board_id}")
        return build_graph_view(self.state, board_id, selected_id)

    def cross_board_links(self, task_id: str) -> list[CrossBoardLink]:
        _require_task(self.state, task_id)
        return cross_board_links(self.state, task_id)

    def notifications_for(self, user_id: str, *, important_only: bool = False) -> list[Notification]:
        """Notifications addressed to ``user_id``, newest first."""
        important = {t.id for t in self.state.tasks if t.is_important}
        return [
            n
            for n in self.state.notifications
            if n.user_id == user_id and (not important_only or n.task_id in important)
        ]

    # ---- task mutations ----

    def create_task(
        self,
        board_id: str,
        title: str,
        description: str | None = None,
        assignee: str | None = None,
        parent_id: str | None = None,
        relation_type: TaskRelationType = TaskRelationType.SUBTASK,
    ) -> Task:
        """Create a TODO task, optionally under a parent.

        A parent on another board turns the relation into CROSS_BOARD.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Task title is required")
        assignee = _clean(assignee)
        parent_id = _clean(parent_id)
        now = self._clock()

        with self._store.transaction() as state:
            if state.board(board_id) is None:
                raise NotFoundError(f"Board not found: {board_id}")

            task = Task(
                id=_time_based_id("TASK", {t.id for t in state.tasks}),
                board_id=board_id,
                title=title,
                description=_clean(description) or DEFAULT_DESCRIPTION,
                status=TaskStatus.TODO,
                assignee=assignee,
                created_at=now,
                updated_at=now,
            )
            state.tasks.append(task)

            if parent_id is not None:
                parent = _require_task(state, parent_id)
                state.relations.append(self._new_relation(parent, task, relation_type))

            if assignee:
                self._push(state, assignee, task, ASSIGNED_MESSAGE, now)

        logger.info("Task created", extra={"structured": {"task_id": task.id, "board_id": board_id}})
        return task

    def edit_task(
        self,
        task_id: str,
        *,
        title: str,
        description: str | None = None,
        assignee: str | None = None,
        parent_id: str | None = None,
        relation_type: TaskRelationType = TaskRelationType.SUBTASK,
    ) -> Task:
        """Replace editable fields and the parent relation.

        Every incoming non-RELATED edge is removed and at most one new parent
        edge is added. RELATED edges are left alone.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Task title is required")
        assignee = _clean(assignee)
        parent_id = _clean(parent_id)
        if parent_id == task_id:
            raise ValidationError("A task cannot be its own parent")
        now = self._clock()

        with self._store.transaction() as state:
            task = _require_task(state, task_id)
            parent = _require_task(state, parent_id) if parent_id is not None else None
            previous_assignee = task.assignee

            task.title = title
            task.description = _clean(description) or DEFAULT_DESCRIPTION
            task.assignee = assignee
            task.updated_at = now

            state.relations = [
                rel
                for rel in state.relations
                if rel.to_task_id != task_id or rel.type == TaskRelationType.RELATED
            ]
            if parent is not None:
                state.relations.append(self._new_relation(parent, task, relation_type))

            if assignee and assignee != previous_assignee:
                self._push(state, assignee, task, REASSIGNED_MESSAGE, now)

        return task

    def delete_task(self, task_id: str) -> None:
        """Remove a task with its relations, logs and manual position, atomically."""
        with self._store.transaction() as state:
            _require_task(state, task_id)
            state.tasks = [t for t in state.tasks if t.id != task_id]
            state.relations = [
                rel
                for rel in state.relations
                if rel.from_task_id != task_id and rel.to_task_id != task_id
            ]
            state.logs.pop(task_id, None)
            state.positions.pop(task_id, None)

        logger.info("Task deleted", extra={"structured": {"task_id": task_id}})

    def set_important(self, task_id: str, important: bool) -> Task:
        with self._store.transaction() as state:
            task = _require_task(state, task_id)
            task.is_important = important
            task.updated_at = self._clock()
        return task

    def add_log(self, task_id: str, text: str, author: str | None = None) -> TaskLog:
        """Prepend a log entry to the task's history."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Log text is required")

        with self._store.transaction() as state:
            _require_task(state, task_id)
            entry = TaskLog(
                id=f"{task_id}-{uuid.uuid4().hex[:12]}",
                task_id=task_id,
                text=text,
                author=_clean(author),
                created_at=self._clock(),
            )
            state.logs[task_id] = [entry, *state.logs.get(task_id, [])]
        return entry

    def move_node(self, task_id: str, x: float, y: float) -> NodePosition:
        """Persist a manual position that overrides the computed layout."""
        with self._store.transaction() as state:
            _require_task(state, task_id)
            position = NodePosition(x=x, y=y)
            state.positions[task_id] = position
        return position

    # ---- relations ----

    def add_relation(
        self, from_task_id: str, to_task_id: str, relation_type: TaskRelationType
    ) -> TaskRelation:
        if from_task_id == to_task_id:
            raise ValidationError("A relation needs two different tasks")

        with self._store.transaction() as state:
            source = _require_task(state, from_task_id)
            target = _require_task(state, to_task_id)
            relation = self._new_relation(source, target, relation_type)
            state.relations.append(relation)
        return relation

    def remove_relation(self, relation_id: str) -> None:
        with self._store.transaction() as state:
            remaining = [rel for rel in state.relations if rel.id != relation_id]
            if len(remaining) == len(state.relations):
                raise NotFoundError(f"Relation not found: {relation_id}")
            state.relations = remaining

    # ---- status ----

    async def change_status(
        self, task_id: str, new_status: TaskStatus, actor: str | None = None
    ) -> Task:
        """Set the status of a task. Any transition is allowed.

        Marking a task DONE notifies its assignee and announces the completion
        through the webhook notifier, after the change is committed.
        """
        now = self._clock()
        payload: TaskCompletedPayload | None = None

        with self._store.transaction() as state:
            task = _require_task(state, task_id)
            task.status = new_status
            task.updated_at = now

            if new_status == TaskStatus.DONE:
                if task.assignee:
                    self._push(state, task.assignee, task, COMPLETED_MESSAGE, now)
                payload = self._completion_payload(state, task, actor, now)

        if payload is not None:
            await self._notifier.notify(payload.to_event())

        return task

    def _completion_payload(
        self, state: BoardSnapshot, task: Task, actor: str | None, finished_at: datetime
    ) -> TaskCompletedPayload:
        outgoing = [rel for rel in state.relations if rel.from_task_id == task.id]
        return TaskCompletedPayload(
            task_id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            assignee=task.assignee,
            actor=actor,
            finished_at=finished_at,
            logs=[
                LogEntry(id=log.id, text=log.text, author=log.author, created_at=log.created_at)
                for log in state.logs.get(task.id, [])
            ],
            sub_task_ids=[
                rel.to_task_id for rel in outgoing if rel.type == TaskRelationType.SUBTASK
            ],
            related_task_ids=[
                rel.to_task_id for rel in outgoing if rel.type == TaskRelationType.RELATED
            ],
            app=self._app_name,
        )

    # ---- notifications ----

    def push_document_request_notification(
        self, user_id: str, request: DocumentRequest
    ) -> Notification:
        """Tell ``user_id`` about a document request, embedding a snapshot of it."""
        with self._store.transaction() as state:
            notification = Notification(
                id=uuid.uuid4().hex,
                user_id=user_id,
                message=DOCUMENT_REQUEST_MESSAGE.format(
                    requester=request.requester_email, keyword=request.keyword
                ),
                type=NotificationType.document_request,
                document_request=request.model_copy(deep=True),
                created_at=self._clock(),
            )
            state.notifications.insert(0, notification)
        return notification

    def _push(
        self, state: BoardSnapshot, user_id: str, task: Task, template: str, now: datetime
    ) -> Notification:
        notification = Notification(
            id=uuid.uuid4().hex,
            user_id=user_id,
            task_id=task.id,
            message=template.format(title=task.title, task_id=task.id),
            type=NotificationType.task,
            created_at=now,
        )
        state.notifications.insert(0, notification)
        return notification

    @staticmethod
    def _new_relation(
        source: Task, target: Task, relation_type: TaskRelationType
    ) -> TaskRelation:
        if source.board_id != target.board_id:
            return TaskRelation(
                id=f"rel-{uuid.uuid4().hex[:12]}",
                from_task_id=source.id,
                to_task_id=target.id,
                type=TaskRelationType.CROSS_BOARD,
                from_board_id=source.board_id,
                to_board_id=target.board_id,
            )
        return TaskRelation(
            id=f"rel-{uuid.uuid4().hex[:12]}",
            from_task_id=source.id,
            to_task_id=target.id,
            type=relation_type,
        )
