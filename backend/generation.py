"""
Text generation service: one prompt in, one completion out.
"""
import logging
import os

import anthropic
from dotenv import load_dotenv

from errors import GenerationFailure

load_dotenv()

logger = logging.getLogger(__name__)

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")
GENERATION_MAX_TOKENS = int(os.getenv("GENERATION_MAX_TOKENS", 2048))
GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", 60))

_client = None


def api_key_configured() -> bool:
    return bool(ANTHROPIC_API_KEY) and ANTHROPIC_API_KEY != "your-api-key-here"


def get_client() -> anthropic.AsyncAnthropic:
    global _client
    if _client is None:
        # No automatic retries; a failed call fails the request.
        _client = anthropic.AsyncAnthropic(
            api_key=ANTHROPIC_API_KEY,
            timeout=GENERATION_TIMEOUT,
            max_retries=0,
        )
    return _client


async def generate_text(prompt: str) -> str:
    """Send prompt to the model and return the text of its reply."""
    if not api_key_configured():
        raise GenerationFailure("API key not configured")

    try:
        response = await get_client().messages.create(
            model=ANTHROPIC_MODEL,
            max_tokens=GENERATION_MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}]
        )
    except anthropic.APIError as e:
        raise GenerationFailure(f"API error: {e}") from e

    text = "".join(block.text for block in response.content if block.type == "text")
    logger.debug("Model response: %s", text)
    return text
