"""
Client-side task tree and its optimistic state.

Tasks arrive flat from GET /tasks and are nested by parent_id. Toggle and
delete are applied to the local tree immediately; the next refresh from the
server replaces the whole tree, which is the only reconciliation step.
"""
from __future__ import annotations

import threading
from typing import Callable, Iterable, Optional

from models import Task, TaskNode

ALL_PRIORITIES = "ALL"


def map_tree(nodes: list[TaskNode], transform: Callable[[TaskNode], TaskNode]) -> list[TaskNode]:
    """Apply transform to every node, depth first, children before parent."""
    result = []
    for node in nodes:
        if node.subtasks:
            node = node.model_copy(update={"subtasks": map_tree(node.subtasks, transform)})
        result.append(transform(node))
    return result


def filter_tree(nodes: list[TaskNode], predicate: Callable[[TaskNode], bool]) -> list[TaskNode]:
    """Keep nodes matching predicate at every depth. A dropped node takes its subtree with it."""
    result = []
    for node in nodes:
        if not predicate(node):
            continue
        if node.subtasks:
            node = node.model_copy(update={"subtasks": filter_tree(node.subtasks, predicate)})
        result.append(node)
    return result


def toggled_status(status: str) -> str:
    return "TODO" if status == "DONE" else "DONE"


def toggle_status(nodes: list[TaskNode], task_id: str) -> list[TaskNode]:
    """Flip the matching node between DONE and TODO wherever it sits."""
    def flip(node: TaskNode) -> TaskNode:
        if node.id != task_id:
            return node
        return node.model_copy(update={"status": toggled_status(node.status)})
    return map_tree(nodes, flip)


def remove_task(nodes: list[TaskNode], task_id: str) -> list[TaskNode]:
    """Drop the matching node at any depth. Unknown ids leave the tree as is."""
    return filter_tree(nodes, lambda node: node.id != task_id)


def find_task(nodes: list[TaskNode], task_id: str) -> Optional[TaskNode]:
    for node in nodes:
        if node.id == task_id:
            return node
        found = find_task(node.subtasks, task_id)
        if found:
            return found
    return None


def filter_by_priority(nodes: list[TaskNode], priority: str = ALL_PRIORITIES) -> list[TaskNode]:
    """Top-level tasks with the given priority ("ALL" for every one).
    Subtasks are never filtered here.
    """
    return [
        node for node in nodes
        if not node.parent_id and (priority == ALL_PRIORITIES or node.priority == priority)
    ]


def build_tree(tasks: Iterable[Task]) -> list[TaskNode]:
    """Nest a flat task list by parent_id, keeping the incoming order.
    Tasks whose parent is not in the list stay at the top level.
    """
    tasks = list(tasks)
    ids = {task.id for task in tasks}
    children: dict[str, list[Task]] = {}
    for task in tasks:
        if task.parent_id and task.parent_id in ids and task.parent_id != task.id:
            children.setdefault(task.parent_id, []).append(task)

    def to_node(task: Task) -> TaskNode:
        subtasks = [to_node(child) for child in children.get(task.id, [])]
        return TaskNode(**task.model_dump(exclude={"subtasks"}), subtasks=subtasks)

    return [
        to_node(task)
        for task in tasks
        if not (task.parent_id and task.parent_id in ids and task.parent_id != task.id)
    ]


class TaskTreeState:
    """
    Local task tree with three transitions:

    apply    -- optimistic mutation, shown before the server answers
    confirm  -- the server answered a pending mutation
    replace  -- authoritative refresh; replaces the tree, clears pending

    Transitions are serialized by a lock. Expanded ids live beside the tree
    and are not touched by any transition.
    """

    def __init__(self, tasks: Optional[list[TaskNode]] = None):
        self._lock = threading.Lock()
        self._tasks: list[TaskNode] = list(tasks or [])
        self._pending: list[int] = []
        self._next_mutation = 0
        self.expanded: set[str] = set()

    @property
    def tasks(self) -> list[TaskNode]:
        with self._lock:
            return list(self._tasks)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def apply(self, mutation: Callable[[list[TaskNode]], list[TaskNode]]) -> int:
        """Apply mutation to the tree now. Returns a ticket for confirm()."""
        with self._lock:
            self._tasks = mutation(self._tasks)
            ticket = self._next_mutation
            self._next_mutation += 1
            self._pending.append(ticket)
            return ticket

    def confirm(self, ticket: int) -> None:
        with self._lock:
            if ticket in self._pending:
                self._pending.remove(ticket)

    def replace(self, tasks: list[TaskNode]) -> None:
        with self._lock:
            self._tasks = list(tasks)
            self._pending.clear()

    def toggle_expand(self, task_id: str) -> bool:
        """Flip a task's expanded flag. Returns the new value."""
        with self._lock:
            if task_id in self.expanded:
                self.expanded.discard(task_id)
                return False
            self.expanded.add(task_id)
            return True

    def is_expanded(self, task_id: str) -> bool:
        return task_id in self.expanded

    def visible(self, priority: str = ALL_PRIORITIES) -> list[TaskNode]:
        return filter_by_priority(self.tasks, priority)
