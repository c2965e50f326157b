import logging
import uuid
from datetime import datetime
from typing import Optional

from database import create_task_db, update_task_db
from errors import UnprocessableIntent
from intent import Intent
from models import PRIORITIES, CreateIntent, Task, UpdateIntent

logger = logging.getLogger(__name__)


def normalize_priority(priority) -> str:
    """Case-insensitive LOW/MEDIUM/HIGH, MEDIUM for anything else."""
    if isinstance(priority, str) and priority.strip().upper() in PRIORITIES:
        return priority.strip().upper()
    return "MEDIUM"


def parse_due_date(value) -> Optional[str]:
    """Parse an ISO 8601 string into a normalized ISO string, or None."""
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value).isoformat()
    except ValueError:
        logger.warning("Ignoring unparseable due date %r", value)
        return None


def apply_update(intent: UpdateIntent, open_tasks: list[Task]) -> Task:
    """Fold an UPDATE intent into the matched open task.

    Only roadmap and aiSuggestion are written, and only when the model
    returned a non-empty value for them.
    """
    if not any(task.id == intent.matched_task_id for task in open_tasks):
        logger.warning("AI matched task %s which is not an open task", intent.matched_task_id)
        raise UnprocessableIntent(f"No open task with id {intent.matched_task_id}")

    updates = {}
    if intent.suggestion and intent.suggestion.strip():
        updates["ai_suggestion"] = intent.suggestion
    if intent.roadmap and intent.roadmap.strip():
        updates["roadmap"] = intent.roadmap

    task = update_task_db(intent.matched_task_id, **updates)
    if task is None:
        # Deleted between the context read and this write
        raise UnprocessableIntent(f"Task {intent.matched_task_id} no longer exists")
    logger.info("Updated task %s from AI input (%s)", task.id, ", ".join(updates) or "no changes")
    return task


def apply_create(intent: CreateIntent) -> Task:
    """Persist a CREATE intent as a new TODO task."""
    task = create_task_db(
        str(uuid.uuid4()),
        intent.title,
        description=intent.description,
        status="TODO",
        priority=normalize_priority(intent.priority),
        due_date=parse_due_date(intent.due_date),
        ai_suggestion=intent.suggestion,
        roadmap=intent.roadmap,
    )
    logger.info("Created task %s from AI input", task.id)
    return task


def reconcile_intent(intent: Intent, open_tasks: list[Task]) -> Task:
    """Route an intent to exactly one store write.

    open_tasks is the listing the prompt was built from; it is used to check
    the model's matchedTaskId and is not re-read.
    """
    if isinstance(intent, UpdateIntent):
        return apply_update(intent, open_tasks)
    return apply_create(intent)
