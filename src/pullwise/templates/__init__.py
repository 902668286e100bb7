"""Jinja2 rendering of pull request comments."""

from pullwise.templates.renderer import (
    BOT_MARKER_COMMENT,
    CommentRenderer,
    category_title,
    fence_language,
    severity_badge,
)

__all__ = [
    "BOT_MARKER_COMMENT",
    "CommentRenderer",
    "category_title",
    "fence_language",
    "severity_badge",
]
