"""
Guarded Google Gen AI client wrapper.

Wraps a ``google.genai`` models interface so that every generate_content
call is checked by AI Guard before and after the model runs.
"""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from .contents import to_contents
from .engine import AsyncGuardrailEngine, GuardrailEngine
from .input import apply_rewrites, flatten_contents, to_request_contents
from .models import ContentBlock, Coordinate, FlatMessage, GuardDecision
from .output import extract_response_text


if TYPE_CHECKING:
    from google.genai import Client


logger = logging.getLogger(__name__)


class _GuardedPipeline:
    """Steps shared by the sync and async generate_content pipelines."""

    def __init__(self, models: Any, guardrails: Any, apply_input_rewrites: bool = True):
        """
        Initialize the pipeline.

        Args:
            models: Model client exposing generate_content(**params)
            guardrails: GuardrailEngine (or AsyncGuardrailEngine)
            apply_input_rewrites: Send guard-rewritten prompts to the model.
                If False, rewrites are ignored and only blocking applies.
        """
        self.models = models
        self.guardrails = guardrails
        self.apply_input_rewrites = apply_input_rewrites

    def _flatten(
        self,
        params: dict[str, Any],
    ) -> tuple[list[ContentBlock], list[FlatMessage], list[Coordinate]]:
        contents = to_contents(params.get("contents"))
        flattened = flatten_contents(contents)
        messages = [message for message, _ in flattened]
        coordinates = [coordinate for _, coordinate in flattened]
        return contents, messages, coordinates

    def _model_params(
        self,
        params: dict[str, Any],
        contents: list[ContentBlock],
        coordinates: list[Coordinate],
        decision: GuardDecision,
    ) -> dict[str, Any]:
        """Params for the model call, with rewrites applied if enabled."""
        if not decision.transformed or decision.messages is None:
            return params

        apply_rewrites(contents, coordinates, decision.messages)

        if not self.apply_input_rewrites:
            logger.debug("Input rewrite ignored, apply_input_rewrites is off")
            return params

        return {**params, "contents": to_request_contents(contents)}


class GuardedModels(_GuardedPipeline):
    """
    Models interface with AI Guard checks on input and output.

    Usage:
        models = GuardedModels(genai_client.models, GuardrailEngine(ai_guard))
        response = models.generate_content(
            model="gemini-2.0-flash",
            contents="why is the sky blue?",
        )
    """

    def generate_content(self, **params: Any) -> Any:
        """
        Generate content with guardrails applied.

        Args:
            **params: Arguments for models.generate_content(); must
                include ``contents``

        Returns:
            The model response, unchanged

        Raises:
            ContentValidationError: If contents cannot be normalized
            GuardrailBlockError: If the prompt or the response is blocked
        """
        contents, messages, coordinates = self._flatten(params)

        decision = self.guardrails.check_input(messages)
        model_params = self._model_params(params, contents, coordinates, decision)

        response = self.models.generate_content(**model_params)

        text = extract_response_text(response)
        if text is None:
            logger.debug("Model response has no text, skipping output guard")
            return response

        self.guardrails.check_output(messages, text)
        return response


class AsyncGuardedModels(_GuardedPipeline):
    """Asyncio variant of GuardedModels."""

    async def generate_content(self, **params: Any) -> Any:
        """Generate content with guardrails applied."""
        contents, messages, coordinates = self._flatten(params)

        decision = await self.guardrails.check_input(messages)
        model_params = self._model_params(params, contents, coordinates, decision)

        response = await self.models.generate_content(**model_params)

        text = extract_response_text(response)
        if text is None:
            logger.debug("Model response has no text, skipping output guard")
            return response

        await self.guardrails.check_output(messages, text)
        return response


class _AsyncNamespace:
    """Holds the async models interface, mirroring ``client.aio``."""

    def __init__(self, models: AsyncGuardedModels):
        self.models = models


class GuardedGenAIClient:
    """
    Google Gen AI client with AI Guard on generate_content.

    Composes the vendor client rather than replacing its attributes:
    ``.models`` and ``.aio.models`` are guarded, ``.client`` is the
    original client.
    """

    def __init__(
        self,
        client: "Client",
        guard_client: Any,
        async_guard_client: Any = None,
        input_recipe: str | None = None,
        output_recipe: str | None = None,
        apply_input_rewrites: bool = True,
    ):
        """
        Initialize the guarded client.

        Args:
            client: google.genai Client
            guard_client: AI Guard client
            async_guard_client: Asyncio AI Guard client (enables ``.aio``)
            input_recipe: Recipe for prompts (default: pangea_prompt_guard)
            output_recipe: Recipe for responses (default: pangea_llm_response_guard)
            apply_input_rewrites: Send guard-rewritten prompts to the model
        """
        self._client = client

        recipes = {}
        if input_recipe:
            recipes["input_recipe"] = input_recipe
        if output_recipe:
            recipes["output_recipe"] = output_recipe

        self.models = GuardedModels(
            client.models,
            GuardrailEngine(guard_client, **recipes),
            apply_input_rewrites=apply_input_rewrites,
        )

        self.aio: _AsyncNamespace | None = None
        if async_guard_client is not None:
            self.aio = _AsyncNamespace(
                AsyncGuardedModels(
                    client.aio.models,
                    AsyncGuardrailEngine(async_guard_client, **recipes),
                    apply_input_rewrites=apply_input_rewrites,
                )
            )

    @property
    def client(self) -> "Client":
        """Access the underlying Gen AI client."""
        return self._client


def get_guarded_client(
    api_key: str | None = None,
    pangea_token: str | None = None,
    config_path: str | None = None,
    **genai_kwargs: Any,
) -> GuardedGenAIClient:
    """
    Convenience function to create a fully configured guarded client.

    Args:
        api_key: Gemini API key (uses env var if not provided)
        pangea_token: AI Guard token (uses env var or secret if not provided)
        config_path: Path to guarded_genai.yaml
        **genai_kwargs: Additional kwargs for google.genai.Client

    Returns:
        Configured GuardedGenAIClient
    """
    from google import genai
    from pangea.config import PangeaConfig
    from pangea.asyncio.services import AIGuardAsync
    from pangea.services import AIGuard

    from .config import load_settings, resolve_pangea_token

    settings = load_settings(config_path)
    token = resolve_pangea_token(pangea_token, settings)
    pangea_config = PangeaConfig(domain=settings.pangea_domain)

    if api_key:
        genai_kwargs["api_key"] = api_key

    return GuardedGenAIClient(
        client=genai.Client(**genai_kwargs),
        guard_client=AIGuard(token, config=pangea_config),
        async_guard_client=AIGuardAsync(token, config=pangea_config),
        input_recipe=settings.input_recipe,
        output_recipe=settings.output_recipe,
        apply_input_rewrites=settings.apply_input_rewrites,
    )
