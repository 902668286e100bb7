"""Resolution of the review configuration for a pull request.

Precedence, lowest first:
1. Global ``review`` defaults
2. ``repositories.<name>`` overrides
3. A ``directories.<name>`` entry, when every changed file lives under it
"""

import logging

from pullwise.config import DirectoryConfig, PullwiseConfig
from pullwise.models.pull_request import FileChange, Repository
from pullwise.models.review_config import CodeReviewConfig, deep_merge

logger = logging.getLogger(__name__)


class ReviewConfigResolver:
    """Builds ``CodeReviewConfig`` objects from the layered configuration."""

    def __init__(self, config: PullwiseConfig) -> None:
        self.config = config

    def _repository_key(self, repository: Repository) -> str:
        if repository.full_name and repository.full_name in self.config.repositories:
            return repository.full_name
        if repository.full_name and repository.full_name in self.config.directories:
            return repository.full_name
        return repository.name

    def directory_configs(self, repository: Repository) -> list[DirectoryConfig]:
        """Directory overrides configured for a repository."""
        return self.config.directory_configs_for(self._repository_key(repository))

    def repository_config(self, repository: Repository) -> CodeReviewConfig:
        """Global defaults merged with the repository overrides.

        Raises:
            ValueError: If the merged settings are invalid
        """
        return self.config.review_config_for(self._repository_key(repository))

    def directory_for(
        self,
        repository: Repository,
        files: list[FileChange],
    ) -> DirectoryConfig | None:
        """Directory containing every changed file, if one is configured.

        The deepest matching directory wins when directories are nested.
        """
        if not files:
            return None
        candidates = [
            d for d in self.directory_configs(repository) if all(d.contains(f.filename) for f in files)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda d: d.path.count("/"))

    def resolve(
        self,
        repository: Repository,
        files: list[FileChange] | None = None,
    ) -> CodeReviewConfig:
        """Resolve the configuration of a review.

        Args:
            repository: Repository of the pull request
            files: Changed files, used to pick a directory override

        Returns:
            Resolved CodeReviewConfig

        Raises:
            ValueError: If the merged settings are invalid
        """
        key = self._repository_key(repository)
        data = self.config.repository_review_data(key)

        directory = self.directory_for(repository, files or [])
        if directory is not None:
            logger.debug("Applying directory config %s for %s", directory.path, key)
            data = deep_merge(data, directory.overrides)

        return CodeReviewConfig.from_dict(data)
