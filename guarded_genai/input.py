"""
Input stage helpers.

Flattens normalized content into guard messages and writes guard
rewrites back into the normalized structure.
"""

from __future__ import annotations

import logging
from typing import Any

from .models import (
    ContentBlock,
    Coordinate,
    FlatMessage,
    Part,
    RewriteMismatchError,
)


logger = logging.getLogger(__name__)


def flatten_contents(
    contents: list[ContentBlock],
) -> list[tuple[FlatMessage, Coordinate]]:
    """
    Project content blocks onto guard messages.

    Only blocks with a role and at least one part are visited, and only
    text parts with non-empty text produce a message. Order is preserved.

    Args:
        contents: Normalized content blocks

    Returns:
        List of (message, coordinate) pairs; the coordinate locates the
        source part in ``contents``
    """
    flattened: list[tuple[FlatMessage, Coordinate]] = []

    for content_index, block in enumerate(contents):
        if block.role is None or not block.parts:
            continue

        for part_index, part in enumerate(block.parts):
            if not part.is_text or not part.text:
                continue
            flattened.append((
                FlatMessage(role=block.role, content=part.text),
                Coordinate(content_index, part_index),
            ))

    return flattened


def apply_rewrites(
    contents: list[ContentBlock],
    coordinates: list[Coordinate],
    rewritten: list[FlatMessage],
) -> list[ContentBlock]:
    """
    Write rewritten guard messages back into content blocks.

    The i-th rewritten message replaces the part at ``coordinates[i]``.
    Parts whose text did not change are left as they are.

    Args:
        contents: Normalized content blocks (mutated in place)
        coordinates: Coordinates from flatten_contents
        rewritten: Messages returned by the guard, aligned with coordinates

    Returns:
        The same ``contents`` list

    Raises:
        RewriteMismatchError: If rewritten is shorter than coordinates or a
            coordinate does not point at an existing part
    """
    if len(rewritten) < len(coordinates):
        raise RewriteMismatchError(
            f"Guard returned {len(rewritten)} messages for {len(coordinates)} inputs"
        )

    changed = 0
    for index, (content_index, part_index) in enumerate(coordinates):
        if not 0 <= content_index < len(contents):
            raise RewriteMismatchError(f"Content index {content_index} out of range")
        parts = contents[content_index].parts
        if not 0 <= part_index < len(parts):
            raise RewriteMismatchError(
                f"Part index {part_index} out of range for content {content_index}"
            )

        new_text = rewritten[index].content
        if not isinstance(new_text, str):
            raise RewriteMismatchError(f"Rewritten message {index} has no text content")
        if parts[part_index].is_text and parts[part_index].text == new_text:
            continue

        parts[part_index] = Part.from_text(new_text)
        changed += 1

    logger.debug(f"Applied {changed} rewritten parts of {len(coordinates)}")
    return contents


def to_request_contents(contents: list[ContentBlock]) -> list[dict[str, Any]]:
    """Convert normalized content blocks back into model-client contents."""
    return [block.to_dict() for block in contents]
