"""
Content normalization.

Turns the loose ``contents`` shapes accepted by ``generate_content`` (a
string, a part, a content block, or a list of either) into an ordered list
of ContentBlock objects with classified parts.
"""

from __future__ import annotations

from typing import Any

from .models import ContentBlock, ContentValidationError, Part


UNSUPPORTED_PART_TYPES = (bool, int, float, complex, bytes)

FUNCTION_CALL_KEYS = ("function_call", "functionCall")
FUNCTION_RESPONSE_KEYS = ("function_response", "functionResponse")


def _get(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return value.get(key)
    return getattr(value, key, None)


def _has_any(value: Any, keys: tuple[str, ...]) -> bool:
    if isinstance(value, dict):
        return any(value.get(k) is not None for k in keys)
    return any(getattr(value, k, None) is not None for k in keys)


def is_content(value: Any) -> bool:
    """Whether a value is shaped like a content block (has a parts list)."""
    if value is None or isinstance(value, (str,) + UNSUPPORTED_PART_TYPES):
        return False
    return isinstance(_get(value, "parts"), list)


def is_function_part(value: Any) -> bool:
    """Whether a value is a function call or function response part."""
    if value is None or isinstance(value, (str,) + UNSUPPORTED_PART_TYPES):
        return False
    return _has_any(value, FUNCTION_CALL_KEYS) or _has_any(value, FUNCTION_RESPONSE_KEYS)


def to_part(value: Any) -> Part:
    """
    Convert a single part value.

    Args:
        value: A string, a part dict, or a part object

    Returns:
        Classified Part

    Raises:
        ContentValidationError: If the value is missing or a primitive
            other than a string
    """
    if value is None:
        raise ContentValidationError("part is required")

    if isinstance(value, str):
        return Part.from_text(value)

    if isinstance(value, UNSUPPORTED_PART_TYPES):
        raise ContentValidationError(f"Unsupported part type: {type(value).__name__}")

    if _has_any(value, FUNCTION_CALL_KEYS):
        return Part(kind="function_call", raw=value)
    if _has_any(value, FUNCTION_RESPONSE_KEYS):
        return Part(kind="function_response", raw=value)

    text = _get(value, "text")
    if isinstance(text, str):
        return Part(kind="text", text=text, raw=value)

    return Part(kind="opaque", raw=value)


def to_parts(value: Any) -> list[Part]:
    """Convert a part or a list of parts."""
    if value is None or (isinstance(value, (list, tuple)) and len(value) == 0):
        raise ContentValidationError("parts are required")

    if isinstance(value, (list, tuple)):
        return [to_part(item) for item in value]

    return [to_part(value)]


def to_content(value: Any) -> ContentBlock:
    """
    Convert a single content value.

    Content-shaped values keep their role; anything else is treated as
    parts of a "user" turn.
    """
    if value is None:
        raise ContentValidationError("content is required")

    if is_content(value):
        return ContentBlock(
            role=_get(value, "role"),
            parts=[to_part(p) for p in _get(value, "parts")],
        )

    return ContentBlock(role="user", parts=to_parts(value))


def to_contents(value: Any) -> list[ContentBlock]:
    """
    Normalize ``contents`` into a non-empty list of content blocks.

    A list is either all content blocks or all parts; the first element
    decides which. Parts are gathered into a single "user" block.

    Args:
        value: Raw ``contents`` value

    Returns:
        List of ContentBlock in input order

    Raises:
        ContentValidationError: On empty input, mixed lists, unwrapped
            function call/response parts, or unsupported part types
    """
    if value is None or (isinstance(value, (list, tuple)) and len(value) == 0):
        raise ContentValidationError("contents are required")

    if not isinstance(value, (list, tuple)):
        if is_function_part(value):
            raise ContentValidationError(
                "To specify function_call or function_response parts, please wrap "
                "them in a Content object, specifying the role for them"
            )
        return [to_content(value)]

    result: list[ContentBlock] = []
    accumulated: list[Any] = []
    content_mode = is_content(value[0])

    for item in value:
        item_is_content = is_content(item)

        if item_is_content != content_mode:
            raise ContentValidationError(
                "Mixing Content and Parts is not supported, please group the parts "
                "into the appropriate Content objects and specify the roles for them"
            )

        if item_is_content:
            result.append(to_content(item))
        elif is_function_part(item):
            raise ContentValidationError(
                "To specify function_call or function_response parts, please wrap "
                "them, and any other parts, in Content objects as appropriate, "
                "specifying the role for them"
            )
        else:
            accumulated.append(item)

    if not content_mode:
        result.append(ContentBlock(role="user", parts=to_parts(accumulated)))

    return result
