from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Literal, Optional

TaskStatus = Literal["TODO", "IN_PROGRESS", "DONE"]
TaskPriority = Literal["LOW", "MEDIUM", "HIGH"]

STATUSES = ("TODO", "IN_PROGRESS", "DONE")
PRIORITIES = ("LOW", "MEDIUM", "HIGH")


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Task(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus = "TODO"
    priority: TaskPriority = "MEDIUM"
    due_date: Optional[str] = None  # ISO format datetime string
    created_at: str
    updated_at: str
    parent_id: Optional[str] = None
    ai_suggestion: Optional[str] = None
    roadmap: Optional[str] = None  # Markdown


class TaskNode(Task):
    """A task as held by the client, with its subtasks nested."""
    subtasks: list["TaskNode"] = []


# Request bodies keep required fields optional so missing input is reported
# as a 400 by the endpoint rather than a schema 422.
class TaskCreate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None


class TaskUpdate(CamelModel):
    id: Optional[str] = None
    status: Optional[str] = None
    is_completed: Optional[bool] = None


class GenerateRequest(CamelModel):
    text: Optional[str] = None
    timezone: Optional[str] = None


# Model intent results, never persisted as-is
class UpdateIntent(CamelModel):
    action: Literal["UPDATE"] = "UPDATE"
    matched_task_id: str
    roadmap: Optional[str] = None
    suggestion: Optional[str] = None


class CreateIntent(CamelModel):
    action: Literal["CREATE"] = "CREATE"
    title: str
    description: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    suggestion: Optional[str] = None
    roadmap: Optional[str] = None


TaskNode.model_rebuild()
