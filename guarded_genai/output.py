"""
Output stage helpers.
"""

from __future__ import annotations

from typing import Any

from .models import FlatMessage


ASSISTANT_ROLE = "assistant"


def extract_response_text(response: Any) -> str | None:
    """
    Extract the text summary from a model response.

    Handles SDK response objects (``response.text``) and plain dicts.

    Args:
        response: Model response

    Returns:
        Response text, or None if the response carries no text
    """
    if response is None:
        return None

    if isinstance(response, dict):
        text = response.get("text")
    else:
        text = getattr(response, "text", None)

    if not isinstance(text, str) or not text:
        return None
    return text


def build_output_messages(
    input_messages: list[FlatMessage],
    response_text: str,
) -> list[FlatMessage]:
    """
    Build the guard messages for a model response.

    The whole response goes in a single assistant message; the guard
    only evaluates the last assistant message it receives.
    """
    return list(input_messages) + [
        FlatMessage(role=ASSISTANT_ROLE, content=response_text)
    ]
