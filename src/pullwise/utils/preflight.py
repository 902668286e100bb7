"""Preflight validation.

Dependencies of a review (LLM provider, execution store) are validated before
any pull request is touched, so a misconfigured run fails with a clear message
instead of leaving a half-posted review behind.
"""

import importlib.util
import json
import os
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pullwise.llm.client import LLMClient, LLMError
from pullwise.models.llm_config import LLMConfig

_API_KEY_ENV_VARS = {
    "claude": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
}


@dataclass
class ToolCheck:
    """Result of checking a single dependency.

    Attributes:
        name: Dependency name
        available: Whether it is usable
        version: Version if known
        required: Whether it is required for this run
        path: Location (module path, URL) if known
        message: Status message (human-readable context)
    """

    name: str
    available: bool
    version: str | None = None
    required: bool = True
    path: str | None = None
    message: str = ""


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether all required dependencies are available
        checks: Individual check results
        errors: Messages for missing required dependencies
        warnings: Messages for missing optional dependencies
    """

    success: bool = True
    checks: list[ToolCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: ToolCheck) -> None:
        """Add a check result."""
        self.checks.append(check)

        if not check.available:
            if check.required:
                self.success = False
                self.errors.append(f"Required dependency unavailable: {check.name}")
            else:
                self.warnings.append(f"Optional dependency unavailable: {check.name}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [
                {
                    "name": c.name,
                    "available": c.available,
                    "version": c.version,
                    "required": c.required,
                    "path": c.path,
                    "message": c.message,
                }
                for c in self.checks
            ],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class PreflightChecker:
    """Validates review dependencies before a run.

    Usage:
        checker = PreflightChecker()
        result = checker.check_all(config.llm, store_path)
        if not result.success:
            raise typer.Exit(1)
    """

    def __init__(self, timeout: int = 10) -> None:
        """Initialize preflight checker.

        Args:
            timeout: Timeout in seconds for network checks
        """
        self.timeout = timeout

    def check_litellm(self, required: bool = True) -> ToolCheck:
        """Check that the LiteLLM package is importable."""
        spec = importlib.util.find_spec("litellm")
        if spec is None:
            return ToolCheck(
                name="litellm",
                available=False,
                required=required,
                message="Install with: pip install litellm",
            )

        import litellm

        return ToolCheck(
            name="litellm",
            available=True,
            version=getattr(litellm, "__version__", None),
            required=required,
            path=spec.origin,
            message="Unified LLM interface",
        )

    def check_ollama_server(self, api_base: str = "http://localhost:11434") -> ToolCheck:
        """Check that an Ollama server answers at ``api_base``."""
        try:
            with urllib.request.urlopen(f"{api_base}/api/tags", timeout=self.timeout) as response:
                if response.status != 200:
                    raise urllib.error.URLError(f"HTTP {response.status}")
        except (urllib.error.URLError, OSError):
            return ToolCheck(
                name="ollama",
                available=False,
                message=f"Ollama not responding at {api_base}. Install from: https://ollama.ai",
            )

        version = None
        try:
            with urllib.request.urlopen(f"{api_base}/api/version", timeout=self.timeout) as response:
                version = json.loads(response.read().decode()).get("version")
        except (urllib.error.URLError, OSError, ValueError):
            pass

        return ToolCheck(
            name="ollama",
            available=True,
            version=version,
            path=api_base,
            message="Local LLM server",
        )

    def check_bedrock_credentials(self) -> ToolCheck | None:
        """Check that AWS credentials are configured.

        Returns:
            A failing ToolCheck when no credentials are found, None otherwise
        """
        has_env = bool(os.environ.get("AWS_ACCESS_KEY_ID")) and bool(os.environ.get("AWS_SECRET_ACCESS_KEY"))
        profile = os.environ.get("AWS_PROFILE", "default")
        credentials_path = Path.home() / ".aws" / "credentials"

        has_file = False
        if credentials_path.exists():
            try:
                has_file = f"[{profile}]" in credentials_path.read_text()
            except OSError:
                pass

        if has_env or has_file:
            return None
        return ToolCheck(
            name="bedrock",
            available=False,
            message=(
                "AWS credentials required. Configure via:\n"
                "  - Environment: AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY\n"
                "  - Credentials file: ~/.aws/credentials"
            ),
        )

    def check_llm_provider(self, config: LLMConfig) -> ToolCheck:
        """Check that the configured LLM provider answers.

        Ollama is checked over HTTP; cloud providers get a minimal completion.

        Args:
            config: LLM configuration

        Returns:
            ToolCheck result
        """
        if config.provider == "ollama":
            return self.check_ollama_server(config.api_base or "http://localhost:11434")

        if config.provider == "bedrock":
            missing = self.check_bedrock_credentials()
            if missing is not None:
                return missing
        elif not config.api_key:
            env_var = _API_KEY_ENV_VARS.get(config.provider, "the provider API key")
            return ToolCheck(
                name=config.provider,
                available=False,
                message=f"API key required. Set llm.api_key (e.g. \"${{{env_var}}}\")",
            )

        try:
            LLMClient(config).complete("Say 'ok'", max_tokens=5)
        except LLMError as e:
            error_msg = str(e)
            if "authentication" in error_msg.lower():
                message = f"Invalid credentials for {config.provider}: {error_msg}"
            else:
                message = f"{config.provider} connection failed: {error_msg}"
            return ToolCheck(name=config.provider, available=False, message=message)

        return ToolCheck(
            name=config.provider,
            available=True,
            path=config.get_litellm_model_name(),
            message=f"{config.provider} verified (model: {config.model})",
        )

    def check_store(self, path: Path) -> ToolCheck:
        """Check that the execution store can be written."""
        directory = path.parent if path.parent != Path("") else Path.cwd()
        existing = directory
        while not existing.exists() and existing != existing.parent:
            existing = existing.parent

        if path.exists() and not os.access(path, os.W_OK):
            return ToolCheck(name="store", available=False, path=str(path), message="Store file is read-only")
        if not os.access(existing, os.W_OK):
            return ToolCheck(
                name="store",
                available=False,
                path=str(path),
                message=f"Cannot create store under {existing}",
            )
        return ToolCheck(name="store", available=True, path=str(path), message="Execution history")

    def check_all(
        self,
        llm_config: LLMConfig,
        store_path: Path | None = None,
        skip_llm: bool = False,
    ) -> PreflightResult:
        """Run all preflight checks.

        Args:
            llm_config: LLM configuration
            store_path: Execution store file, checked when given
            skip_llm: Whether LLM validation is skipped

        Returns:
            PreflightResult with all check results
        """
        result = PreflightResult()

        if store_path is not None:
            result.add_check(self.check_store(store_path))

        if not skip_llm and llm_config.enabled:
            litellm_check = self.check_litellm(required=True)
            result.add_check(litellm_check)
            if litellm_check.available:
                result.add_check(self.check_llm_provider(llm_config))

        return result
