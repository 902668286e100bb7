"""Unified LLM client wrapper using LiteLLM.

Provides a consistent interface for multiple LLM providers. Temperature is
fixed at 0 so that the same diff produces the same review. When a fallback
model is configured it is tried once after the primary model fails.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import litellm

from pullwise.models.llm_config import LLMConfig

logger = logging.getLogger(__name__)

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


@dataclass
class LLMResponse:
    """Response from LLM completion.

    Attributes:
        content: Generated text content
        model: Model that generated the response
        usage: Token usage statistics
        finish_reason: Reason for completion (stop, length, etc.)
    """

    content: str
    model: str
    usage: dict[str, int]
    finish_reason: str | None = None


class LLMError(Exception):
    """Exception raised for LLM-related errors."""


class LLMClient:
    """Unified LLM client using LiteLLM.

    Supports Claude, OpenAI, Gemini, Ollama and Bedrock through a single
    interface.
    """

    def __init__(self, config: LLMConfig) -> None:
        """Initialize LLM client with configuration.

        Args:
            config: LLM configuration with provider, model, and credentials
        """
        self.config = config

    def _completion_kwargs(self, model: str, messages: list[dict[str, str]], max_tokens: int | None) -> dict[str, Any]:
        """Build the keyword arguments for ``litellm.completion``."""
        kwargs: dict[str, Any] = {
            "model": self.config.get_litellm_model_name(model),
            "messages": messages,
            "temperature": 0,
            "max_tokens": max_tokens or self.config.max_tokens,
            "timeout": self.config.timeout,
        }
        if self.config.api_key:
            kwargs["api_key"] = self.config.api_key
        if self.config.api_base:
            kwargs["api_base"] = self.config.api_base
        return kwargs

    def _call(self, model: str, messages: list[dict[str, str]], max_tokens: int | None) -> LLMResponse:
        """Run one completion against a model.

        Raises:
            LLMError: If the completion fails
        """
        try:
            response = litellm.completion(**self._completion_kwargs(model, messages, max_tokens))
        except litellm.exceptions.AuthenticationError as e:
            raise LLMError(f"Authentication failed for {self.config.provider}: {e}") from e
        except litellm.exceptions.RateLimitError as e:
            raise LLMError(f"Rate limit exceeded for {self.config.provider}: {e}") from e
        except litellm.exceptions.APIConnectionError as e:
            raise LLMError(f"Connection failed to {self.config.provider}: {e}") from e
        except Exception as e:
            raise LLMError(f"LLM completion failed: {e}") from e

        choice = response.choices[0]
        usage: dict[str, int] = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
                "total_tokens": response.usage.total_tokens or 0,
            }

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model or model,
            usage=usage,
            finish_reason=choice.finish_reason,
        )

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion from the LLM.

        Args:
            prompt: User prompt for the LLM
            system_prompt: Optional system prompt
            max_tokens: Override max_tokens from config

        Returns:
            LLMResponse with generated content

        Raises:
            LLMError: If the primary and fallback models both fail
        """
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            return self._call(self.config.model, messages, max_tokens)
        except LLMError as e:
            if not self.config.fallback_model:
                raise
            logger.warning(
                "Model %s failed (%s), retrying with fallback %s",
                self.config.model,
                e,
                self.config.fallback_model,
            )
            return self._call(self.config.fallback_model, messages, max_tokens)

    def complete_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> Any:
        """Generate a completion and parse it as JSON.

        Args:
            prompt: User prompt for the LLM
            system_prompt: Optional system prompt
            max_tokens: Override max_tokens from config

        Returns:
            Parsed JSON value

        Raises:
            LLMError: If the completion fails or is not valid JSON
        """
        response = self.complete(prompt, system_prompt=system_prompt, max_tokens=max_tokens)
        try:
            return extract_json(response.content)
        except ValueError as e:
            if response.finish_reason == "length":
                raise LLMError(f"LLM response was truncated before the JSON was complete: {e}") from e
            raise LLMError(f"LLM returned invalid JSON: {e}") from e

    def check_available(self) -> bool:
        """Check if the LLM provider is available.

        Performs a minimal API call to verify connectivity.

        Returns:
            True if provider is reachable and credentials are valid
        """
        try:
            self.complete("Say 'ok'", max_tokens=10)
            return True
        except LLMError:
            return False


def extract_json(text: str) -> Any:
    """Extract a JSON value from an LLM response.

    Accepts fenced ```json blocks, bare JSON, or JSON surrounded by prose.

    Args:
        text: Raw response text

    Returns:
        Parsed JSON value

    Raises:
        ValueError: If no JSON value can be parsed
    """
    text = text.strip()
    if not text:
        raise ValueError("empty response")

    candidates: list[str] = []
    fenced = _FENCED_JSON_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    candidates.append(text)

    for opener, closer in (("{", "}"), ("[", "]")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            candidates.append(text[start : end + 1])

    last_error: json.JSONDecodeError | None = None
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e

    raise ValueError(f"no JSON found in response ({last_error})")


def create_client(config: LLMConfig) -> LLMClient:
    """Create an LLM client from configuration.

    Args:
        config: LLM configuration

    Returns:
        Configured LLMClient instance

    Raises:
        ValueError: If LLM is disabled in config
    """
    if not config.enabled:
        raise ValueError("LLM is disabled in configuration")

    return LLMClient(config)
