"""
Free text in, one created or updated task out.

Steps run strictly in order: read open tasks, compose the prompt, call the
model, parse its reply, write to the store.
"""
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from database import get_open_tasks
from generation import generate_text
from intent import parse_intent
from models import Task
from prompts import build_context_listing, compose_prompt
from reconcile import reconcile_intent

logger = logging.getLogger(__name__)

TextGenerator = Callable[[str], Awaitable[str]]


def build_context() -> tuple[list[Task], str]:
    """Fetch the open tasks and their context listing."""
    open_tasks = get_open_tasks()
    return open_tasks, build_context_listing(open_tasks)


async def ingest_text(
    text: str,
    timezone: Optional[str] = None,
    generate: Optional[TextGenerator] = None,
    now: Optional[datetime] = None
) -> Task:
    """Resolve free text against the open tasks and persist the result."""
    generate = generate or generate_text

    open_tasks, context = build_context()
    prompt = compose_prompt(text, context, now=now, timezone=timezone)
    logger.info("Resolving input against %d open task(s)", len(open_tasks))

    raw = await generate(prompt)
    intent = parse_intent(raw)
    return reconcile_intent(intent, open_tasks)
