"""
Guard execution engine.

Runs the input and output guard checks against the AI Guard service.
"""

from __future__ import annotations

import logging
from typing import Any

from .models import FlatMessage, GuardDecision, GuardrailBlockError
from .output import build_output_messages


logger = logging.getLogger(__name__)


DEFAULT_INPUT_RECIPE = "pangea_prompt_guard"
DEFAULT_OUTPUT_RECIPE = "pangea_llm_response_guard"


class GuardrailEngine:
    """
    Guard engine for a synchronous AI Guard client.

    The client must provide ``guard(input=..., recipe=...)`` returning a
    response with ``result.blocked``, ``result.transformed`` and, when
    transformed, ``result.output.messages``.
    """

    def __init__(
        self,
        guard_client: Any,
        input_recipe: str = DEFAULT_INPUT_RECIPE,
        output_recipe: str = DEFAULT_OUTPUT_RECIPE,
    ):
        """
        Initialize the guard engine.

        Args:
            guard_client: AI Guard client
            input_recipe: Recipe applied to prompts
            output_recipe: Recipe applied to prompts plus model responses
        """
        self.guard_client = guard_client
        self.input_recipe = input_recipe
        self.output_recipe = output_recipe

    def _request(
        self,
        messages: list[FlatMessage],
        recipe: str,
    ) -> dict[str, Any]:
        return {
            "input": {"messages": [m.to_dict() for m in messages]},
            "recipe": recipe,
        }

    def _evaluate(
        self,
        response: Any,
        stage: str,
        recipe: str,
    ) -> GuardDecision:
        """Parse a guard response and raise if it blocks."""
        decision = GuardDecision.from_response(response)

        if decision.blocked:
            logger.warning(f"AI Guard blocked {stage} (recipe={recipe})")
            details = {"summary": decision.summary} if decision.summary else {}
            raise GuardrailBlockError(stage=stage, recipe=recipe, details=details)

        if decision.transformed:
            logger.info(f"AI Guard transformed {stage} (recipe={recipe})")
        else:
            logger.debug(f"AI Guard passed {stage} (recipe={recipe})")

        return decision

    def check_input(self, messages: list[FlatMessage]) -> GuardDecision:
        """
        Guard prompt messages.

        Args:
            messages: Flattened prompt messages

        Returns:
            GuardDecision (possibly carrying rewritten messages)

        Raises:
            GuardrailBlockError: If the guard blocks the prompt
        """
        request = self._request(messages, self.input_recipe)
        response = self.guard_client.guard(**request)
        return self._evaluate(response, "input", self.input_recipe)

    def check_output(
        self,
        messages: list[FlatMessage],
        response_text: str,
    ) -> GuardDecision:
        """
        Guard a model response in the context of its prompt.

        A transformed decision is returned to the caller but is not applied
        to the model response.

        Raises:
            GuardrailBlockError: If the guard blocks the response
        """
        request = self._request(
            build_output_messages(messages, response_text),
            self.output_recipe,
        )
        response = self.guard_client.guard(**request)
        return self._evaluate(response, "output", self.output_recipe)


class AsyncGuardrailEngine(GuardrailEngine):
    """Guard engine for an asyncio AI Guard client."""

    async def check_input(self, messages: list[FlatMessage]) -> GuardDecision:
        request = self._request(messages, self.input_recipe)
        response = await self.guard_client.guard(**request)
        return self._evaluate(response, "input", self.input_recipe)

    async def check_output(
        self,
        messages: list[FlatMessage],
        response_text: str,
    ) -> GuardDecision:
        request = self._request(
            build_output_messages(messages, response_text),
            self.output_recipe,
        )
        response = await self.guard_client.guard(**request)
        return self._evaluate(response, "output", self.output_recipe)
