# Ingestion prompt: the model either folds the input into an open task (UPDATE)
# or structures it as a new one (CREATE).
# The context listing and user text are placed verbatim; the model output is
# untrusted and validated by intent.parse_intent.
from datetime import datetime
from typing import Iterable, Optional

from models import Task

DEFAULT_TIMEZONE = "UTC"

INGEST_PROMPT = """Current Time: {now} (User Timezone: {timezone})

EXISTING TASKS:
{context}

USER INPUT: "{text}"

Task: Analyze the user input. Does it refer to modifying or adding to an existing task, or creating a new one?

Return ONLY a JSON object, no other text.

Scenario A: UPDATE Existing Task
If the input relates to one of the existing tasks (e.g. "update roadmap for..."), return:
{{
    "action": "UPDATE",
    "matchedTaskId": "ID of the task, copied exactly from EXISTING TASKS",
    "roadmap": "Markdown formatted step-by-step guide, merging the new content into the task's plan",
    "suggestion": "Updated tip (optional)"
}}

Scenario B: CREATE New Task
If the input is unrelated to every existing task, return:
{{
    "action": "CREATE",
    "title": "Main task title",
    "description": "Main task summary",
    "priority": "LOW" | "MEDIUM" | "HIGH",
    "dueDate": "ISO 8601 date string or null",
    "suggestion": "Brief, actionable tip (max 20 words)",
    "roadmap": "Detailed step-by-step instructions in Markdown. Use headers, bullet points, and code blocks if needed."
}}

Priority: use HIGH for urgent or time-critical input, LOW when it can clearly wait, MEDIUM otherwise.
Convert relative dates like "today", "tomorrow", "next Monday" to ISO 8601 using the current time and the user's timezone.
Only use "UPDATE" with an ID that appears in EXISTING TASKS. If EXISTING TASKS is empty, always use "CREATE".
"""


def format_task_line(task: Task) -> str:
    return f"- [{task.id}] {task.title}: {task.description or ''}"


def build_context_listing(tasks: Iterable[Task]) -> str:
    """Render open tasks as one "- [id] title: description" line each.
    Returns "" when there are no tasks.
    """
    return "\n".join(format_task_line(task) for task in tasks)


def compose_prompt(
    text: str,
    context: str,
    now: Optional[datetime] = None,
    timezone: Optional[str] = None
) -> str:
    """Build the ingestion prompt for one request."""
    now = now or datetime.now().astimezone()
    return INGEST_PROMPT.format(
        now=now.isoformat(),
        timezone=(timezone or "").strip() or DEFAULT_TIMEZONE,
        context=context,
        text=text,
    )
