"""Markdown rendering of review comments.

Comment bodies are rendered from Jinja2 templates shipped with the package,
so the same review always produces the same text.
"""

import logging
from typing import Any

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from pullwise.models.pull_request import FileChange, PullRequest
from pullwise.models.review_config import SeverityLevel
from pullwise.models.suggestion import CodeSuggestion, CommentResult, DeliveryStatus, OverallComment

logger = logging.getLogger(__name__)

BOT_MARKER_COMMENT = "<!-- pullwise-review -->"

_SEVERITY_BADGES = {
    SeverityLevel.CRITICAL: "🔴 Critical",
    SeverityLevel.HIGH: "🟠 High",
    SeverityLevel.MEDIUM: "🟡 Medium",
    SeverityLevel.LOW: "🔵 Low",
}

_FENCE_LANGUAGES = {
    "c++": "cpp",
    "c#": "csharp",
    "golang": "go",
    "javascript": "js",
    "typescript": "ts",
}


def severity_badge(severity: SeverityLevel | str) -> str:
    """Render a severity as a short badge."""
    return _SEVERITY_BADGES[SeverityLevel.parse(severity)]


def category_title(label: str | None) -> str:
    """Turn a category label (``error_handling``) into a title (``Error Handling``)."""
    if not label:
        return "General"
    return label.replace("_", " ").title()


def fence_language(language: str | None) -> str:
    """Language tag for a markdown code fence."""
    if not language:
        return ""
    lowered = language.strip().lower()
    return _FENCE_LANGUAGES.get(lowered, lowered)


class CommentRenderer:
    """Renders the comments posted on a pull request.

    Usage:
        renderer = CommentRenderer()
        body = renderer.render_line_comment(suggestion)
    """

    def __init__(self) -> None:
        self._env = Environment(
            loader=PackageLoader("pullwise", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._env.filters["severity_badge"] = severity_badge
        self._env.filters["category_title"] = category_title
        self._env.filters["fence_language"] = fence_language

    def _render(self, template_name: str, **context: Any) -> str:
        """Render a template.

        Raises:
            ValueError: If the template is missing or fails to render
        """
        try:
            template = self._env.get_template(template_name)
            rendered = template.render(marker=BOT_MARKER_COMMENT, **context)
        except TemplateError as e:
            logger.error("Failed to render %s: %s", template_name, e)
            raise ValueError(f"Template rendering failed for {template_name}: {e}") from e
        return rendered.strip() + "\n"

    def render_initial_comment(self, pull_request: PullRequest, files: list[FileChange]) -> str:
        """Body of the "review started" comment."""
        return self._render(
            "initial_comment.md.j2",
            pull_request=pull_request,
            files=files,
        )

    def render_line_comment(self, suggestion: CodeSuggestion, language: str | None = None) -> str:
        """Body of a comment on changed lines."""
        return self._render(
            "line_comment.md.j2",
            suggestion=suggestion,
            language=suggestion.language or language,
        )

    def render_finished_comment(
        self,
        pull_request: PullRequest,
        files: list[FileChange],
        line_comments: list[CommentResult],
        overall_comments: list[OverallComment],
        discarded_count: int = 0,
    ) -> str:
        """Body of the initial comment once the review finished."""
        sent = [c for c in line_comments if c.delivery_status == DeliveryStatus.SENT]
        severity_counts = {
            level: sum(1 for c in sent if c.comment.suggestion and c.comment.suggestion.severity == level)
            for level in sorted(SeverityLevel, key=lambda lv: -lv.rank)
        }
        return self._render(
            "review_finished.md.j2",
            pull_request=pull_request,
            files=files,
            sent_count=len(sent),
            failed_count=len(line_comments) - len(sent),
            severity_counts={k: v for k, v in severity_counts.items() if v},
            overall_comments=overall_comments,
            discarded_count=discarded_count,
        )

    def render_pause_comment(self, command: str) -> str:
        """Body of the comment left when reviews are paused.

        Args:
            command: Comment that resumes reviews
        """
        return self._render("pause_comment.md.j2", command=command)
