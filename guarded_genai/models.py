"""
Data models for the guarded content pipeline.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal, NamedTuple


# Valid values for part discrimination and guard stages
VALID_PART_KINDS = ("text", "function_call", "function_response", "opaque")
VALID_STAGES = ("input", "output")


@dataclass
class Part:
    """
    A single part of a content block.

    The kind is decided once when the part is built; nothing downstream
    inspects the raw value's shape again.
    """

    kind: Literal["text", "function_call", "function_response", "opaque"]
    text: str | None = None
    raw: Any = None

    def __post_init__(self):
        """Validate part kind."""
        if self.kind not in VALID_PART_KINDS:
            raise ValueError(
                f"Invalid part kind '{self.kind}'. Must be one of: {VALID_PART_KINDS}"
            )
        if self.kind == "text" and not isinstance(self.text, str):
            raise ValueError("text is required when kind is 'text'")

    @classmethod
    def from_text(cls, text: str) -> "Part":
        """Build a text part with no original payload."""
        return cls(kind="text", text=text)

    @property
    def is_text(self) -> bool:
        return self.kind == "text"

    def to_payload(self) -> Any:
        """Value to hand back to the model client."""
        if self.raw is not None:
            return self.raw
        if self.is_text:
            return {"text": self.text}
        return {}


@dataclass
class ContentBlock:
    """One conversational turn: a role and its ordered parts."""

    role: str | None
    parts: list[Part] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a model-client content dict."""
        result: dict[str, Any] = {"parts": [p.to_payload() for p in self.parts]}
        if self.role is not None:
            result["role"] = self.role
        return result


@dataclass
class FlatMessage:
    """A (role, text) message as sent to the guard service."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"role": self.role, "content": self.content}


class Coordinate(NamedTuple):
    """Position of a text part within a normalized content list."""

    content_index: int
    part_index: int


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from either a dict or an SDK object."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


@dataclass
class GuardDecision:
    """Parsed result of a single guard call."""

    blocked: bool
    transformed: bool
    messages: list[FlatMessage] | None = None
    summary: str | None = None

    @classmethod
    def from_response(cls, response: Any) -> "GuardDecision":
        """
        Parse a guard response.

        Accepts the SDK's response object or the equivalent plain dict,
        i.e. ``{"result": {"blocked", "transformed", "output": {"messages"}}}``.
        """
        result = _field(response, "result", response)
        output = _field(result, "output")
        raw_messages = _field(output, "messages")

        messages = None
        if isinstance(raw_messages, list):
            messages = [
                FlatMessage(
                    role=_field(m, "role"),
                    content=_field(m, "content"),
                )
                for m in raw_messages
            ]

        return cls(
            blocked=bool(_field(result, "blocked", False)),
            transformed=bool(_field(result, "transformed", False)),
            messages=messages,
            summary=_field(response, "summary"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "blocked": self.blocked,
            "transformed": self.transformed,
        }
        if self.messages is not None:
            result["messages"] = [m.to_dict() for m in self.messages]
        if self.summary:
            result["summary"] = self.summary
        return result


class ContentValidationError(ValueError):
    """Raised when content input cannot be normalized."""
    pass


class RewriteMismatchError(RuntimeError):
    """Raised when rewritten messages do not line up with the flattened input."""
    pass


class GuardrailBlockError(Exception):
    """Raised when the guard service blocks a request or a response."""

    def __init__(
        self,
        stage: str,
        recipe: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        if stage not in VALID_STAGES:
            raise ValueError(
                f"Invalid stage '{stage}'. Must be one of: {VALID_STAGES}"
            )
        self.stage = stage
        self.recipe = recipe
        self.message = message or f"{stage.capitalize()} blocked by AI Guard recipe: {recipe}"
        self.details = details or {}
        super().__init__(self.message)

    def to_http_status(self) -> int:
        """Get appropriate HTTP status code."""
        # Blocked prompts are client errors (400)
        # Blocked responses are server errors (500) - the model produced them
        return 400 if self.stage == "input" else 500

    def to_response(self) -> dict[str, Any]:
        """Convert to API Gateway response format."""
        return {
            "statusCode": self.to_http_status(),
            "headers": {
                "Content-Type": "application/json",
                "Access-Control-Allow-Origin": "*",
            },
            "body": json.dumps({
                "error": self.message,
                "recipe": self.recipe,
                "stage": self.stage,
                "details": self.details,
            }),
        }
