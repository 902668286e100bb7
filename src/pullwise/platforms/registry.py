"""Platform registry.

Maps platform names to adapter classes. Platforms are selected by name from
configuration or the CLI, never hardcoded in the pipeline.
"""

from typing import Any

from pullwise.platforms.base import CodeManagementAdapter, PlatformNotAvailableError


class PlatformRegistry:
    """Registry of code hosting platform adapters.

    Adding a platform:
        1. Implement CodeManagementAdapter
        2. Register the class under its platform name
        3. No changes needed to the review pipeline
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._adapters: dict[str, type[CodeManagementAdapter]] = {}
        self._default: str | None = None

    def register(
        self,
        name: str,
        adapter_class: type[CodeManagementAdapter],
        is_default: bool = False,
    ) -> None:
        """Register a platform adapter.

        Args:
            name: Platform identifier (e.g., "local")
            adapter_class: Adapter class to register
            is_default: Whether this is the default platform
        """
        self._adapters[name] = adapter_class
        if is_default or self._default is None:
            self._default = name

    def get(self, name: str | None = None, **kwargs: Any) -> CodeManagementAdapter:
        """Get a platform adapter instance.

        Args:
            name: Platform name (uses default if None)
            **kwargs: Adapter constructor arguments

        Returns:
            Instantiated adapter

        Raises:
            PlatformNotAvailableError: If the platform is not registered
        """
        platform = name or self._default
        if platform is None:
            raise PlatformNotAvailableError("platform", "No platform configured")

        if platform not in self._adapters:
            raise PlatformNotAvailableError(
                platform,
                f"Platform '{platform}' not registered. Available: {self.list_platforms()}",
            )

        return self._adapters[platform](platform, **kwargs)

    def list_platforms(self) -> list[str]:
        """Get registered platform names."""
        return list(self._adapters.keys())

    @property
    def default(self) -> str | None:
        """Name of the default platform."""
        return self._default


_registry: PlatformRegistry | None = None


def get_registry() -> PlatformRegistry:
    """Get the global platform registry with the built-in adapters.

    Returns:
        Global PlatformRegistry instance
    """
    global _registry
    if _registry is None:
        from pullwise.platforms.local import LocalCodeManagementAdapter

        _registry = PlatformRegistry()
        _registry.register("local", LocalCodeManagementAdapter, is_default=True)
    return _registry


def reset_registry() -> None:
    """Reset the global registry (primarily for testing)."""
    global _registry
    _registry = None
