"""Pullwise utility modules.

- logging: Standardized logging with human/verbose/JSON modes
- preflight: LLM provider and store availability checks
"""

from pullwise.utils.logging import get_logger, setup_logging
from pullwise.utils.preflight import PreflightChecker, PreflightResult

__all__ = [
    "get_logger",
    "setup_logging",
    "PreflightChecker",
    "PreflightResult",
]
