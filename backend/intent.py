"""
Turns raw model completions into a typed intent.

The model is asked for bare JSON but often wraps it in a markdown code block,
so fences are stripped before parsing. Anything that is not an UPDATE with a
task id is treated as a CREATE.
"""
import json
import logging
import re
from typing import Union

import pydantic

from errors import MalformedModelOutput
from models import CreateIntent, UpdateIntent

logger = logging.getLogger(__name__)

Intent = Union[UpdateIntent, CreateIntent]

_OPENING_FENCE = re.compile(r"^```[A-Za-z]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ``` / ```json line and a trailing ``` if present."""
    text = text.strip()
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def _string_or_none(value):
    if isinstance(value, str):
        return value
    if value is not None:
        logger.warning("Ignoring non-string value %r in AI response", value)
    return None


def parse_intent(raw_text: str) -> Intent:
    """Parse a completion into an UpdateIntent or CreateIntent.

    Raises MalformedModelOutput when the text is not a JSON object or a
    CREATE result lacks a usable title.
    """
    cleaned = strip_code_fences(raw_text or "")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("AI returned invalid JSON: %s", raw_text)
        raise MalformedModelOutput(f"Invalid JSON: {e}", raw_text) from e

    if not isinstance(data, dict):
        logger.error("AI returned JSON that is not an object: %s", raw_text)
        raise MalformedModelOutput("Expected a JSON object", raw_text)

    action = str(data.get("action") or "").strip().upper()
    matched_task_id = data.get("matchedTaskId")

    try:
        if action == "UPDATE" and matched_task_id:
            return UpdateIntent(
                matched_task_id=str(matched_task_id),
                roadmap=data.get("roadmap"),
                suggestion=data.get("suggestion"),
            )

        if action != "CREATE":
            logger.info("Unrecognized action %r, treating as CREATE", data.get("action"))
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            logger.error("AI returned a CREATE result without a title: %s", raw_text)
            raise MalformedModelOutput("CREATE result has no title", raw_text)
        # Non-string priority/dueDate count as absent: MEDIUM and no due date
        return CreateIntent(
            title=title.strip(),
            description=data.get("description"),
            priority=_string_or_none(data.get("priority")),
            due_date=_string_or_none(data.get("dueDate")),
            suggestion=data.get("suggestion"),
            roadmap=data.get("roadmap"),
        )
    except pydantic.ValidationError as e:
        logger.error("AI response has unexpected field types: %s", raw_text)
        raise MalformedModelOutput(str(e), raw_text) from e
