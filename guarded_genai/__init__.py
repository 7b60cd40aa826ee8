"""
AI Guard for Google Gen AI.

Checks generate_content calls with the Pangea AI Guard service:
- Input: the prompt is flattened to text messages and guarded before the
  model runs; blocked prompts never reach the model, rewritten prompts
  are written back into the request
- Output: the prompt plus the model's text response is guarded before the
  response is returned

Usage:
    from guarded_genai import get_guarded_client, GuardrailBlockError

    client = get_guarded_client()

    try:
        response = client.models.generate_content(
            model="gemini-2.0-flash",
            contents="why is the sky blue?",
        )
    except GuardrailBlockError as e:
        return e.to_response()
"""

from .models import (
    ContentBlock,
    Part,
    FlatMessage,
    Coordinate,
    GuardDecision,
    GuardrailBlockError,
    ContentValidationError,
    RewriteMismatchError,
    VALID_PART_KINDS,
    VALID_STAGES,
)

from .contents import (
    to_part,
    to_parts,
    to_content,
    to_contents,
)

from .input import (
    flatten_contents,
    apply_rewrites,
    to_request_contents,
)

from .output import (
    extract_response_text,
    build_output_messages,
)

from .engine import (
    GuardrailEngine,
    AsyncGuardrailEngine,
    DEFAULT_INPUT_RECIPE,
    DEFAULT_OUTPUT_RECIPE,
)

from .config import (
    GuardSettings,
    load_settings,
    validate_config,
    resolve_pangea_token,
    ConfigValidationError,
)

from .client import (
    GuardedModels,
    AsyncGuardedModels,
    GuardedGenAIClient,
    get_guarded_client,
)


__all__ = [
    # Models
    "ContentBlock",
    "Part",
    "FlatMessage",
    "Coordinate",
    "GuardDecision",
    "GuardrailBlockError",
    "ContentValidationError",
    "RewriteMismatchError",
    "VALID_PART_KINDS",
    "VALID_STAGES",
    # Contents
    "to_part",
    "to_parts",
    "to_content",
    "to_contents",
    # Input
    "flatten_contents",
    "apply_rewrites",
    "to_request_contents",
    # Output
    "extract_response_text",
    "build_output_messages",
    # Engine
    "GuardrailEngine",
    "AsyncGuardrailEngine",
    "DEFAULT_INPUT_RECIPE",
    "DEFAULT_OUTPUT_RECIPE",
    # Config
    "GuardSettings",
    "load_settings",
    "validate_config",
    "resolve_pangea_token",
    "ConfigValidationError",
    # Client
    "GuardedModels",
    "AsyncGuardedModels",
    "GuardedGenAIClient",
    "get_guarded_client",
]
