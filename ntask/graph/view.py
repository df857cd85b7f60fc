"""Headless rendering of a board: placed nodes and edges with highlight flags."""

from pydantic import BaseModel

from ntask.graph.layout import highlight, layout
from ntask.graph.store import BoardSnapshot
from ntask.models.board import TaskRelationType, TaskStatus


class GraphNode(BaseModel):
    """A task as drawn on the board."""

    id: str
    title: str
    status: TaskStatus
    assignee: str | None
    is_important: bool
    level: int
    x: float
    y: float
    highlighted: bool
    dimmed: bool


class GraphEdge(BaseModel):
    """A relation as drawn on the board."""

    id: str
    source: str
    target: str
    type: TaskRelationType
    highlighted: bool
    dimmed: bool


class GraphView(BaseModel):
    """Everything needed to draw one board."""

    board_id: str
    selected_id: str | None
    nodes: list[GraphNode]
    edges: list[GraphEdge]


class CrossBoardLink(BaseModel):
    """A task on another board reached through a CROSS_BOARD relation."""

    relation_id: str
    task_id: str
    title: str
    board_id: str
    board_name: str | None


def build_graph_view(
    state: BoardSnapshot, board_id: str, selected_id: str | None = None
) -> GraphView:
    """Render ``board_id``: its tasks, and the relations between them.

    CROSS_BOARD relations are never drawn; use :func:`cross_board_links`.
    With a selection, exactly the selected task, its direct neighbours and the
    relations touching it are highlighted, and everything else is dimmed.
    """
    tasks = [t for t in state.tasks if t.board_id == board_id]
    on_board = {t.id for t in tasks}
    relations = [
        rel
        for rel in state.relations
        if rel.type != TaskRelationType.CROSS_BOARD
        and rel.from_task_id in on_board
        and rel.to_task_id in on_board
    ]

    if selected_id not in on_board:
        selected_id = None

    focus = highlight(selected_id, relations)
    placements = {p.task_id: p for p in layout(tasks, relations, state.positions)}

    nodes = [
        GraphNode(
            id=t.id,
            title=t.title,
            status=t.status,
            assignee=t.assignee,
            is_important=t.is_important,
            level=placements[t.id].level,
            x=placements[t.id].x,
            y=placements[t.id].y,
            highlighted=t.id in focus.node_ids,
            dimmed=focus.active and t.id not in focus.node_ids,
        )
        for t in tasks
    ]
    edges = [
        GraphEdge(
            id=rel.id,
            source=rel.from_task_id,
            target=rel.to_task_id,
            type=rel.type,
            highlighted=rel.id in focus.edge_ids,
            dimmed=focus.active and rel.id not in focus.edge_ids,
        )
        for rel in relations
    ]

    return GraphView(board_id=board_id, selected_id=selected_id, nodes=nodes, edges=edges)


def cross_board_links(state: BoardSnapshot, task_id: str) -> list[CrossBoardLink]:
    """Tasks on other boards linked to ``task_id`` by CROSS_BOARD relations."""
    links: list[CrossBoardLink] = []
    for rel in state.relations:
        if rel.type != TaskRelationType.CROSS_BOARD:
            continue
        if rel.from_task_id == task_id:
            other_id = rel.to_task_id
        elif rel.to_task_id == task_id:
            other_id = rel.from_task_id
        else:
            continue

        other = state.task(other_id)
        if other is None:
            continue
        board = state.board(other.board_id)
        links.append(
            CrossBoardLink(
                relation_id=rel.id,
                task_id=other.id,
                title=other.title,
                board_id=other.board_id,
                board_name=board.name if board else None,
            )
        )
    return links
