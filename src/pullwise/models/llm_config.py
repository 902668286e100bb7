"""LLM configuration entity.

Reviews, summaries and rule generation all go through one LiteLLM model,
with an optional fallback model on the same provider that is tried when the
primary call fails.
"""

from dataclasses import dataclass, field
from typing import Any

# Valid LLM providers
VALID_PROVIDERS = frozenset({"claude", "openai", "gemini", "ollama", "bedrock"})

# Providers that authenticate with an API key
_API_KEY_PROVIDERS = frozenset({"claude", "openai", "gemini"})

# LiteLLM model prefixes by provider
_LITELLM_PREFIXES = {
    "claude": "anthropic",
    "openai": "openai",
    "gemini": "gemini",
    "ollama": "ollama",
    "bedrock": "bedrock",
}


@dataclass
class LLMConfig:
    """Configuration for the LLM provider.

    Attributes:
        provider: LLM provider (claude, openai, gemini, ollama, bedrock)
        model: Model identifier
        api_key: API key (not required for Ollama or Bedrock)
        api_base: API base URL (required for Ollama)
        temperature: Temperature setting (must be 0 so reviews are repeatable)
        max_tokens: Maximum response tokens
        enabled: Whether LLM calls are enabled
        fallback_model: Model tried when the primary model fails
        timeout: Request timeout in seconds
    """

    provider: str
    model: str
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = field(default=0.0)
    max_tokens: int = field(default=8192)
    enabled: bool = field(default=True)
    fallback_model: str | None = None
    timeout: int = 120

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.provider = self.provider.lower().strip()

        if self.provider not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider '{self.provider}'. "
                f"Must be one of: {sorted(VALID_PROVIDERS)}"
            )

        if not self.model or not self.model.strip():
            raise ValueError("Model identifier cannot be empty")
        self.model = self.model.strip()

        if self.fallback_model is not None:
            self.fallback_model = self.fallback_model.strip() or None

        if self.temperature != 0.0:
            raise ValueError(f"Temperature must be 0 for repeatable reviews. Got: {self.temperature}")

        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive. Got: {self.max_tokens}")

        if self.provider == "ollama" and not self.api_base:
            raise ValueError("api_base is required for Ollama provider")
        if self.provider in _API_KEY_PROVIDERS and not self.api_key:
            raise ValueError(f"api_key is required for {self.provider} provider")

    def validate(self) -> list[str]:
        """Validate configuration and return warnings.

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings: list[str] = []

        if self.max_tokens < 2000:
            warnings.append(
                f"max_tokens is set to {self.max_tokens}, which may truncate review responses"
            )

        if self.api_base and not self.api_base.startswith(("http://", "https://")):
            warnings.append(f"api_base '{self.api_base}' does not start with http:// or https://")

        if self.fallback_model == self.model:
            warnings.append("fallback_model is the same as model and will never help")

        return warnings

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "provider": self.provider,
            "model": self.model,
            "api_key": self.api_key,
            "api_base": self.api_base,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "enabled": self.enabled,
            "fallback_model": self.fallback_model,
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LLMConfig":
        """Create LLMConfig from dictionary.

        Args:
            data: Dictionary with configuration values

        Returns:
            LLMConfig instance
        """
        provider = str(data.get("provider", "ollama"))
        api_base = data.get("api_base") or None
        if provider == "ollama" and not api_base:
            api_base = "http://localhost:11434"

        return cls(
            provider=provider,
            model=str(data.get("model", "llama3.2")),
            api_key=data.get("api_key") or None,
            api_base=api_base,
            temperature=float(data.get("temperature", 0.0)),
            max_tokens=int(data.get("max_tokens", 8192)),
            enabled=bool(data.get("enabled", True)),
            fallback_model=data.get("fallback_model") or None,
            timeout=int(data.get("timeout", 120)),
        )

    def get_litellm_model_name(self, model: str | None = None) -> str:
        """Get a model name in LiteLLM ``provider/model`` format.

        Args:
            model: Model to format (defaults to the primary model)

        Returns:
            Model name formatted for LiteLLM
        """
        return f"{_LITELLM_PREFIXES[self.provider]}/{model or self.model}"
