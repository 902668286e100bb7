"""LLM integration module for Pullwise.

Provides a unified LLM client wrapper using LiteLLM for multi-provider
support, plus the prompts used by the review pipeline and comment analysis.
Temperature is fixed at 0 for repeatable output.
"""

from pullwise.llm.client import (
    LLMClient,
    LLMError,
    LLMResponse,
    create_client,
    extract_json,
)
from pullwise.llm.prompts import SYSTEM_PROMPTS, get_system_prompt
from pullwise.models.llm_config import VALID_PROVIDERS, LLMConfig

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMError",
    "LLMResponse",
    "SYSTEM_PROMPTS",
    "VALID_PROVIDERS",
    "create_client",
    "extract_json",
    "get_system_prompt",
]
