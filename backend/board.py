"""
HTTP client for the task list with optimistic toggle/delete.

Every mutation is shown locally first, then sent to the server, then followed
by a full refresh whether the server call worked or not. A failed call is not
rolled back locally; the refresh restores server truth.
"""
import logging
from typing import Optional

import httpx

from models import Task, TaskNode
from task_tree import (
    ALL_PRIORITIES,
    TaskTreeState,
    build_tree,
    find_task,
    remove_task,
    toggle_status,
    toggled_status,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 90.0


class TaskBoard:
    def __init__(self, http: httpx.Client, state: Optional[TaskTreeState] = None):
        self.http = http
        self.state = state or TaskTreeState()

    @classmethod
    def connect(cls, base_url: str, timeout: float = DEFAULT_TIMEOUT) -> "TaskBoard":
        return cls(httpx.Client(base_url=base_url, timeout=timeout))

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def refresh(self) -> bool:
        """Replace local state with the server's task list."""
        try:
            response = self.http.get("/tasks")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to fetch tasks: %s", e)
            return False
        tasks = [Task.model_validate(item) for item in response.json()]
        self.state.replace(build_tree(tasks))
        return True

    def toggle(self, task_id: str) -> bool:
        """Flip a task between DONE and TODO. Returns whether the server accepted it."""
        sent = {}

        def mutation(tasks: list[TaskNode]) -> list[TaskNode]:
            node = find_task(tasks, task_id)
            if node is not None:
                sent["status"] = toggled_status(node.status)
            return toggle_status(tasks, task_id)

        ticket = self.state.apply(mutation)
        if "status" not in sent:
            logger.warning("Task %s is not in the local list", task_id)
            self.state.confirm(ticket)
            self.refresh()
            return False

        ok = self._send(ticket, "PUT", "/tasks", json={"id": task_id, "status": sent["status"]})
        self.refresh()
        return ok

    def delete(self, task_id: str) -> bool:
        """Remove a task (and its subtasks) locally, then on the server."""
        ticket = self.state.apply(lambda tasks: remove_task(tasks, task_id))
        ok = self._send(ticket, "DELETE", "/tasks", params={"id": task_id})
        self.refresh()
        return ok

    def add(self, text: str, timezone: Optional[str] = None) -> Optional[Task]:
        """Send free text through /tasks/generate."""
        body = {"text": text}
        if timezone:
            body["timezone"] = timezone
        return self._post_task("/tasks/generate", body)

    def add_manual(self, title: str) -> Optional[Task]:
        return self._post_task("/tasks", {"title": title})

    def toggle_expand(self, task_id: str) -> bool:
        return self.state.toggle_expand(task_id)

    def visible(self, priority: str = ALL_PRIORITIES) -> list[TaskNode]:
        return self.state.visible(priority)

    def _send(self, ticket: int, method: str, url: str, **kwargs) -> bool:
        try:
            response = self.http.request(method, url, **kwargs)
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            return False
        finally:
            self.state.confirm(ticket)

    def _post_task(self, url: str, body: dict) -> Optional[Task]:
        task = None
        try:
            response = self.http.post(url, json=body)
            response.raise_for_status()
            task = Task.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.warning("Error submitting task: %s", e)
        self.refresh()
        return task
