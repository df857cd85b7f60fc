"""Layered layout and first-degree highlighting for the task graph.

Levels come from SUBTASK edges only. Other relation types are drawn but never
affect depth.
"""

import logging
from collections import deque
from collections.abc import Iterable, Mapping

from pydantic import BaseModel

from ntask.models.board import NodePosition, Task, TaskRelation, TaskRelationType

logger = logging.getLogger(__name__)

X_GAP = 240
Y_GAP = 160


class Highlight(BaseModel):
    """Nodes and edges touched by the current selection."""

    node_ids: set[str]
    edge_ids: set[str]

    @property
    def active(self) -> bool:
        return bool(self.node_ids)


class NodeLayout(BaseModel):
    """Computed placement for a single task."""

    task_id: str
    level: int
    x: float
    y: float
    manual: bool = False


def compute_levels(tasks: Iterable[Task], relations: Iterable[TaskRelation]) -> dict[str, int]:
    """Assign a depth to every task from the SUBTASK hierarchy.

    Breadth-first from every task without a SUBTASK parent; a child's level is
    the maximum over its parents of ``parent_level + 1``. Tasks that are never
    reached stay at level 0.

    SUBTASK cycles are not rejected. A level is capped at ``len(tasks) - 1``,
    the length of the longest simple path, so nodes on a reachable cycle settle
    at the cap and every node is enqueued at most ``len(tasks)`` times.

    Args:
        tasks: Tasks to place
        relations: All relations; non-SUBTASK edges and edges to unknown tasks
            are ignored

    Returns:
        Mapping task_id -> level
    """
    task_ids = [task.id for task in tasks]
    known = set(task_ids)
    max_level = max(len(task_ids) - 1, 0)

    children: dict[str, list[str]] = {task_id: [] for task_id in task_ids}
    in_degree: dict[str, int] = {task_id: 0 for task_id in task_ids}
    for rel in relations:
        if rel.type != TaskRelationType.SUBTASK:
            continue
        if rel.from_task_id not in known or rel.to_task_id not in known:
            continue
        children[rel.from_task_id].append(rel.to_task_id)
        in_degree[rel.to_task_id] += 1

    level: dict[str, int] = {task_id: 0 for task_id in task_ids}
    queue: deque[str] = deque(task_id for task_id in task_ids if in_degree[task_id] == 0)
    capped: set[str] = set()

    while queue:
        current = queue.popleft()
        next_level = level[current] + 1
        for child in children[current]:
            if next_level <= level[child]:
                continue
            if next_level > max_level:
                capped.add(child)
                continue
            level[child] = next_level
            queue.append(child)

    if capped:
        logger.warning(
            "SUBTASK cycle detected; levels capped",
            extra={"structured": {"capped_task_ids": sorted(capped), "max_level": max_level}},
        )

    return level


def layout(
    tasks: list[Task],
    relations: Iterable[TaskRelation],
    positions: Mapping[str, NodePosition] | None = None,
    *,
    x_gap: int = X_GAP,
    y_gap: int = Y_GAP,
) -> list[NodeLayout]:
    """Place every task on a grid: one row per level, left to right.

    A manual position always wins. Otherwise level-0 and parentless tasks take
    the next slot in their row, and children are centred under the mean x of
    their SUBTASK parents, pushed right to keep ``x_gap`` from the previous
    node in the row.
    """
    positions = positions or {}
    relations = list(relations)
    levels = compute_levels(tasks, relations)

    parents: dict[str, list[str]] = {task.id: [] for task in tasks}
    for rel in relations:
        if rel.type == TaskRelationType.SUBTASK and rel.to_task_id in parents:
            if rel.from_task_id in parents:
                parents[rel.to_task_id].append(rel.from_task_id)

    rows: dict[int, list[Task]] = {}
    for task in tasks:
        rows.setdefault(levels[task.id], []).append(task)

    placed: dict[str, NodeLayout] = {}

    for lv in sorted(rows):
        row = rows[lv]
        desired: list[tuple[float, int, Task]] = []
        for idx, task in enumerate(row):
            parent_xs = [placed[p].x for p in parents[task.id] if p in placed]
            x = sum(parent_xs) / len(parent_xs) if parent_xs else float(idx * x_gap)
            desired.append((x, idx, task))

        desired.sort(key=lambda item: (item[0], item[1]))
        previous_x: float | None = None
        for x, _, task in desired:
            if previous_x is not None and x < previous_x + x_gap:
                x = previous_x + x_gap
            previous_x = x

            manual = positions.get(task.id)
            if manual is not None:
                placed[task.id] = NodeLayout(
                    task_id=task.id, level=lv, x=manual.x, y=manual.y, manual=True
                )
            else:
                placed[task.id] = NodeLayout(task_id=task.id, level=lv, x=x, y=float(lv * y_gap))

    return [placed[task.id] for task in tasks]


def highlight(selected_id: str | None, relations: Iterable[TaskRelation]) -> Highlight:
    """First-degree neighbourhood of the selected task.

    Includes the selected task itself, every task sharing a relation with it
    (either direction) and the ids of those relations. No selection yields an
    empty highlight, meaning nothing is dimmed.
    """
    if selected_id is None:
        return Highlight(node_ids=set(), edge_ids=set())

    node_ids = {selected_id}
    edge_ids: set[str] = set()
    for rel in relations:
        if rel.from_task_id == selected_id or rel.to_task_id == selected_id:
            node_ids.add(rel.from_task_id)
            node_ids.add(rel.to_task_id)
            edge_ids.add(rel.id)

    return Highlight(node_ids=node_ids, edge_ids=edge_ids)


def neighbor_ids(task_id: str, relations: Iterable[TaskRelation]) -> set[str]:
    """Ids of tasks directly connected to ``task_id`` by any relation."""
    ids: set[str] = set()
    for rel in relations:
        if rel.from_task_id == task_id:
            ids.add(rel.to_task_id)
        if rel.to_task_id == task_id:
            ids.add(rel.from_task_id)
    return ids
