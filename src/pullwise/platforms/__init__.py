"""Code hosting platform adapters.

- base: CodeManagementAdapter interface and platform errors
- local: adapter backed by a pull request event file
- registry: name to adapter lookup
"""

from pullwise.platforms.base import (
    CodeManagementAdapter,
    PlatformError,
    PlatformNotAvailableError,
)
from pullwise.platforms.local import LocalCodeManagementAdapter, load_event
from pullwise.platforms.registry import PlatformRegistry, get_registry, reset_registry

__all__ = [
    "CodeManagementAdapter",
    "LocalCodeManagementAdapter",
    "PlatformError",
    "PlatformNotAvailableError",
    "PlatformRegistry",
    "get_registry",
    "load_event",
    "reset_registry",
]
