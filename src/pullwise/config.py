"""Pullwise configuration system.

Configuration is YAML-based with minimal CLI overrides (--config, --ci).
Supports environment variable substitution (${VAR}) in config files.

Review settings are layered: the ``review`` section holds global defaults,
``repositories`` overrides them per repository and ``directories`` overrides
them again for monorepo sub-directories.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.pullwise/config.yaml
3. ./pullwise.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from pullwise.models.llm_config import LLMConfig
from pullwise.models.review_config import CodeReviewConfig, deep_merge

# =============================================================================
# Configuration Dataclasses
# =============================================================================


def _default_llm() -> LLMConfig:
    return LLMConfig(provider="ollama", model="llama3.2", api_base="http://localhost:11434")


@dataclass
class PipelineConfig:
    """Review pipeline tuning.

    Attributes:
        max_files: PRs with more changed files are not reviewed
        min_batch_size: Smallest number of files reviewed per batch
        max_batch_size: Largest number of files reviewed per batch
        max_concurrency: Files reviewed in parallel within a batch
    """

    max_files: int = 500
    min_batch_size: int = 20
    max_batch_size: int = 30
    max_concurrency: int = 4

    def __post_init__(self) -> None:
        """Validate pipeline configuration."""
        if self.max_files <= 0:
            raise ValueError(f"max_files must be positive. Got: {self.max_files}")
        if not 0 < self.min_batch_size <= self.max_batch_size:
            raise ValueError(
                "Batch sizes must satisfy 0 < min_batch_size <= max_batch_size "
                f"(got {self.min_batch_size}, {self.max_batch_size})"
            )
        if self.max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be positive. Got: {self.max_concurrency}")


@dataclass
class StoreConfig:
    """Execution history storage.

    Attributes:
        path: JSON file holding past review executions
    """

    path: str = ".pullwise/executions.json"


@dataclass
class DirectoryConfig:
    """Review overrides for a directory of a monorepo.

    Attributes:
        path: Directory path relative to the repository root
        overrides: Review settings overriding the repository settings
    """

    path: str
    overrides: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Normalize the directory path."""
        self.path = self.path.strip().strip("/")
        if not self.path:
            raise ValueError("Directory config path cannot be empty")

    def contains(self, filename: str) -> bool:
        """Return True if a file lives under this directory."""
        return filename.lstrip("/").startswith(self.path + "/")


@dataclass
class CIConfig:
    """CI/CD-specific configuration.

    Attributes:
        fail_on_warning: Exit with error if the review was skipped
        json_output: Use JSON output format
        timeout: Timeout for a whole review run in seconds (0 disables it)
    """

    fail_on_warning: bool = False
    json_output: bool = False
    timeout: int = 600


@dataclass
class PullwiseConfig:
    """Top-level Pullwise configuration.

    Attributes:
        llm: LLM settings
        review: Global review defaults (raw dictionary, see CodeReviewConfig)
        repositories: Per-repository review overrides keyed by repository name
        directories: Per-repository directory overrides
        pipeline: Pipeline tuning
        store: Execution history storage
        ci: CI/CD settings
    """

    llm: LLMConfig = field(default_factory=_default_llm)
    review: dict[str, Any] = field(default_factory=dict)
    repositories: dict[str, dict[str, Any]] = field(default_factory=dict)
    directories: dict[str, list[DirectoryConfig]] = field(default_factory=dict)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    ci: CIConfig = field(default_factory=CIConfig)

    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path

    def repository_review_data(self, repository: str) -> dict[str, Any]:
        """Global review defaults merged with a repository's overrides."""
        return deep_merge(self.review, self.repositories.get(repository))

    def review_config_for(self, repository: str) -> CodeReviewConfig:
        """Resolve the review configuration of a repository.

        Args:
            repository: Repository name

        Returns:
            CodeReviewConfig with repository overrides applied
        """
        return CodeReviewConfig.from_dict(self.repository_review_data(repository))

    def directory_configs_for(self, repository: str) -> list[DirectoryConfig]:
        """Get the directory overrides of a repository."""
        return list(self.directories.get(repository, []))


# =============================================================================
# Environment Variable Substitution
# =============================================================================

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax, e.g. ${ANTHROPIC_API_KEY}.

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return _ENV_VAR_RE.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.pullwise/config.yaml
    2. ./pullwise.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    start_path = (start_path or Path.cwd()).resolve()

    for candidate in (
        start_path / ".pullwise" / "config.yaml",
        start_path / "pullwise.yaml",
    ):
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(data: dict[str, Any]) -> PullwiseConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        PullwiseConfig instance

    Raises:
        ValueError: If a section is invalid
    """
    data = substitute_env_vars(data)

    config = PullwiseConfig()

    if "llm" in data:
        config.llm = LLMConfig.from_dict(data["llm"] or {})

    if "review" in data:
        config.review = dict(data["review"] or {})
        # Fail fast on invalid enum values
        CodeReviewConfig.from_dict(config.review)

    for repo_name, overrides in (data.get("repositories") or {}).items():
        config.repositories[str(repo_name)] = dict(overrides or {})
        CodeReviewConfig.from_dict(config.repository_review_data(str(repo_name)))

    for repo_name, entries in (data.get("directories") or {}).items():
        config.directories[str(repo_name)] = [
            DirectoryConfig(path=str(entry.get("path", "")), overrides=dict(entry.get("review") or {}))
            for entry in entries or []
            if isinstance(entry, dict)
        ]
        for directory in config.directories[str(repo_name)]:
            CodeReviewConfig.from_dict(
                deep_merge(config.repository_review_data(str(repo_name)), directory.overrides)
            )

    if "pipeline" in data:
        pipeline_data = data["pipeline"] or {}
        defaults = PipelineConfig()
        config.pipeline = PipelineConfig(
            max_files=pipeline_data.get("max_files", defaults.max_files),
            min_batch_size=pipeline_data.get("min_batch_size", defaults.min_batch_size),
            max_batch_size=pipeline_data.get("max_batch_size", defaults.max_batch_size),
            max_concurrency=pipeline_data.get("max_concurrency", defaults.max_concurrency),
        )

    if "store" in data:
        config.store = StoreConfig(path=(data["store"] or {}).get("path", config.store.path))

    if "ci" in data:
        ci_data = data["ci"] or {}
        config.ci = CIConfig(
            fail_on_warning=ci_data.get("fail_on_warning", False),
            json_output=ci_data.get("json_output", False),
            timeout=ci_data.get("timeout", 600),
        )

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> PullwiseConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        PullwiseConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path: Path | None = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is None:
        return PullwiseConfig()

    with open(found_path) as f:
        data = yaml.safe_load(f) or {}
    config = load_config_from_dict(data)
    config._config_path = found_path
    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# Pullwise Configuration

# LLM settings (used for file reviews, summaries and rule generation)
llm:
  provider: "ollama"     # ollama (local), claude, openai, gemini, bedrock
  model: "llama3.2"
  # api_key: "${ANTHROPIC_API_KEY}"  # Required for claude/openai/gemini
  api_base: "http://localhost:11434"
  # fallback_model: "llama3.1"
  temperature: 0         # MUST be 0 for repeatable reviews
  max_tokens: 8192

# Global review defaults
review:
  automated_review_active: true
  # base_branches: ["main", "!release/*", "contains:hotfix"]
  ignore_paths: ["*.lock", "dist/*"]
  ignored_titles: ["[skip review]"]
  run_on_draft: false
  suggestion_control:
    limitation_type: "pr"          # file, pr, severity
    max_suggestions: 9
    severity_level_filter: "medium" # low, medium, high, critical
  summary:
    generate_pr_summary: false
    behaviour_for_new_commits: "none"  # none, replace, concatenate
  review_cadence:
    type: "automatic"    # automatic, manual, auto_pause
    time_window: 15
    pushes_to_trigger: 3

# Per-repository overrides
# repositories:
#   my-service:
#     run_on_draft: true

# Per-directory overrides for monorepos
# directories:
#   my-monorepo:
#     - path: "services/billing"
#       review:
#         suggestion_control:
#           severity_level_filter: "high"

pipeline:
  max_files: 500
  max_concurrency: 4

store:
  path: ".pullwise/executions.json"

# CI/CD settings
ci:
  fail_on_warning: false
  json_output: false
  timeout: 600
'''
