"""Task board endpoints - boards, tasks, relations, notifications."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from ntask.api.deps import get_task_service
from ntask.graph.service import TaskService
from ntask.graph.view import CrossBoardLink, GraphView
from ntask.models.board import (
    Board,
    NodePosition,
    Task,
    TaskLog,
    TaskRelation,
    TaskRelationType,
    TaskStatus,
)
from ntask.models.notifications import Notification

router = APIRouter(tags=["boards"])

Tasks = Annotated[TaskService, Depends(get_task_service)]


class BoardListResponse(BaseModel):
    """Response for GET /boards."""

    boards: list[Board]
    active_board_id: str | None


class CreateBoardBody(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None


class ActiveBoardBody(BaseModel):
    board_id: str


class CreateTaskBody(BaseModel):
    """Request body for POST /tasks. board_id defaults to the active board."""

    title: str
    board_id: str | None = None
    description: str | None = None
    assignee: str | None = None
    parent_id: str | None = None
    relation_type: TaskRelationType = TaskRelationType.SUBTASK


class EditTaskBody(BaseModel):
    """Request body for PUT /tasks/{task_id}. Replaces the parent relation."""

    title: str
    description: str | None = None
    assignee: str | None = None
    parent_id: str | None = None
    relation_type: TaskRelationType = TaskRelationType.SUBTASK


class TaskDetail(BaseModel):
    """Task with its history and direct neighbours."""

    task: Task
    logs: list[TaskLog]
    subtasks: list[Task]
    related: list[Task]


class StatusBody(BaseModel):
    status: TaskStatus
    actor: str | None = None


class ImportantBody(BaseModel):
    important: bool


class LogBody(BaseModel):
    text: str
    author: str | None = None


class CreateRelationBody(BaseModel):
    from_task_id: str
    to_task_id: str
    type: TaskRelationType = TaskRelationType.RELATED


# Boards


@router.get("/boards", response_model=BoardListResponse)
async def list_boards(tasks: Tasks) -> BoardListResponse:
    return BoardListResponse(boards=tasks.list_boards(), active_board_id=tasks.active_board_id())


@router.post("/boards", response_model=Board, status_code=status.HTTP_201_CREATED)
async def create_board(body: CreateBoardBody, tasks: Tasks) -> Board:
    return tasks.create_board(body.name, body.description)


@router.put("/boards/active", response_model=BoardListResponse)
async def set_active_board(body: ActiveBoardBody, tasks: Tasks) -> BoardListResponse:
    tasks.set_active_board(body.board_id)
    return BoardListResponse(boards=tasks.list_boards(), active_board_id=tasks.active_board_id())


@router.get("/boards/{board_id}/graph", response_model=GraphView)
async def board_graph(
    board_id: str,
    tasks: Tasks,
    selected: Annotated[str | None, Query()] = None,
) -> GraphView:
    """Laid-out graph for a board, with the selected task's neighbourhood highlighted."""
    return tasks.graph_view(board_id, selected)


# Tasks


@router.post("/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(body: CreateTaskBody, tasks: Tasks) -> Task:
    board_id = body.board_id or tasks.active_board_id() or ""
    return tasks.create_task(
        board_id,
        body.title,
        description=body.description,
        assignee=body.assignee,
        parent_id=body.parent_id,
        relation_type=body.relation_type,
    )


@router.get("/tasks/{task_id}", response_model=TaskDetail)
async def get_task(task_id: str, tasks: Tasks) -> TaskDetail:
    return TaskDetail(
        task=tasks.get_task(task_id),
        logs=tasks.logs_for(task_id),
        subtasks=tasks.subtasks(task_id),
        related=tasks.related_tasks(task_id),
    )


@router.put("/tasks/{task_id}", response_model=Task)
async def edit_task(task_id: str, body: EditTaskBody, tasks: Tasks) -> Task:
    return tasks.edit_task(
        task_id,
        title=body.title,
        description=body.description,
        assignee=body.assignee,
        parent_id=body.parent_id,
        relation_type=body.relation_type,
    )


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, tasks: Tasks) -> Response:
    tasks.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tasks/{task_id}/status", response_model=Task)
async def change_status(task_id: str, body: StatusBody, tasks: Tasks) -> Task:
    """Set the status; DONE notifies the assignee and fires the completion webhook."""
    return await tasks.change_status(task_id, body.status, body.actor)


@router.post("/tasks/{task_id}/important", response_model=Task)
async def set_important(task_id: str, body: ImportantBody, tasks: Tasks) -> Task:
    return tasks.set_important(task_id, body.important)


@router.post("/tasks/{task_id}/logs", response_model=TaskLog, status_code=status.HTTP_201_CREATED)
async def add_log(task_id: str, body: LogBody, tasks: Tasks) -> TaskLog:
    return tasks.add_log(task_id, body.text, body.author)


@router.get("/tasks/{task_id}/cross-board", response_model=list[CrossBoardLink])
async def cross_board(task_id: str, tasks: Tasks) -> list[CrossBoardLink]:
    return tasks.cross_board_links(task_id)


@router.put("/tasks/{task_id}/position", response_model=NodePosition)
async def move_node(task_id: str, body: NodePosition, tasks: Tasks) -> NodePosition:
    return tasks.move_node(task_id, body.x, body.y)


# Relations


@router.post("/relations", response_model=TaskRelation, status_code=status.HTTP_201_CREATED)
async def add_relation(body: CreateRelationBody, tasks: Tasks) -> TaskRelation:
    return tasks.add_relation(body.from_task_id, body.to_task_id, body.type)


@router.delete("/relations/{relation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_relation(relation_id: str, tasks: Tasks) -> Response:
    tasks.remove_relation(relation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Notifications


@router.get("/notifications", response_model=list[Notification])
async def list_notifications(
    tasks: Tasks,
    user: Annotated[str, Query(min_length=1)],
    important_only: bool = False,
) -> list[Notification]:
    """Notifications for ``user``, newest first."""
    return tasks.notifications_for(user, important_only=important_only)
