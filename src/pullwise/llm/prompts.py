"""LLM prompt templates.

Every prompt asks for a JSON response so that callers can parse it with
``LLMClient.complete_json``. System prompts live in ``SYSTEM_PROMPTS``;
the ``build_*`` functions render the matching user prompt from domain
objects.
"""

import json
from typing import TYPE_CHECKING, Any

from pullwise.models.review_config import REVIEW_CATEGORIES

if TYPE_CHECKING:
    from pullwise.models.pull_request import FileChange, PullRequest
    from pullwise.models.review_config import CodeReviewConfig
    from pullwise.models.rules import ReviewRule, UncategorizedComment


SEVERITY_GUIDE = """
Severity levels:
- critical: security holes, data loss, crashes in common paths
- high: bugs that break a feature or produce wrong results
- medium: error handling gaps, performance problems, fragile code
- low: style, naming, documentation and minor maintainability issues
"""

SYSTEM_PROMPTS = {
    "file_review": (
        "You are a senior engineer reviewing one file of a pull request.\n"
        "Only comment on lines that were added or changed in the diff. The diff "
        "is annotated: lines under __new hunk__ carry their line number in the "
        "new file, lines under __old hunk__ were removed.\n"
        "Never suggest changes that are already present in the new code. "
        "Prefer a few precise suggestions over many vague ones.\n"
        + SEVERITY_GUIDE
        + "\nRespond with JSON only:\n"
        '{"overall_summary": "<one paragraph on what changed>", '
        '"code_suggestions": [{"relevant_file": "...", "language": "...", '
        '"suggestion_content": "...", "existing_code": "...", "improved_code": "...", '
        '"one_sentence_summary": "...", "relevant_lines_start": 1, '
        '"relevant_lines_end": 1, "label": "<category>", "severity": "<level>"}]}'
    ),
    "pr_summary": (
        "You write pull request descriptions for reviewers.\n"
        "Describe what the change does and why, grouped by area, in markdown. "
        "Use concrete file and function names from the diff. Do not invent "
        "behaviour that is not in the diff.\n"
        'Respond with JSON only: {"summary": "<markdown>"}'
    ),
    "irrelevance_filter": (
        "You filter code review comments.\n"
        "A comment is irrelevant when it carries no reusable coding guidance: "
        "greetings, thanks, questions about status, merge logistics, CI noise, "
        "or remarks that only make sense for that single line. Keep every "
        "other comment.\n"
        'Respond with JSON only: {"ids": ["<id of each comment to keep>"]}'
    ),
    "categorize": (
        "You classify code review comments.\n"
        f"Categories: {', '.join(REVIEW_CATEGORIES)}.\n"
        + SEVERITY_GUIDE
        + "\nRespond with JSON only: "
        '{"suggestions": [{"id": "<comment id>", "category": "<category>", "severity": "<level>"}]}'
    ),
    "rules_generation": (
        "You turn recurring code review feedback into coding rules.\n"
        "Each rule must be specific, checkable in a diff, and backed by at "
        "least one of the comments. When a library rule already expresses the "
        "same guidance, return that library rule with its uuid instead of "
        "writing a new one.\n"
        + SEVERITY_GUIDE
        + "\nRespond with JSON only: "
        '{"rules": [{"uuid": "<library uuid or empty>", "title": "...", "rule": "...", '
        '"severity": "<level>", "why_is_this_important": "...", '
        '"examples": [{"snippet": "...", "is_correct": false}]}]}'
    ),
    "duplicate_filter": (
        "You compare newly generated coding rules with rules a team already has.\n"
        "Keep a new rule only if no existing rule covers the same guidance.\n"
        'Respond with JSON only: {"uuids": ["<uuid of each new rule to keep>"]}'
    ),
    "quality_filter": (
        "You review coding rules before they are proposed to a team.\n"
        "Drop rules that are vague, contradictory, project-trivia, or "
        "impossible to check in a diff.\n"
        'Respond with JSON only: {"uuids": ["<uuid of each rule to keep>"]}'
    ),
}


def get_system_prompt(name: str) -> str:
    """Get a system prompt by name.

    Args:
        name: Prompt name (key of SYSTEM_PROMPTS)

    Returns:
        System prompt text

    Raises:
        KeyError: If the prompt does not exist
    """
    return SYSTEM_PROMPTS[name]


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


# =============================================================================
# Code Review Prompts
# =============================================================================


def build_file_review_prompt(
    file: "FileChange",
    pull_request: "PullRequest",
    config: "CodeReviewConfig",
) -> str:
    """Build the user prompt for reviewing one file.

    Args:
        file: Changed file with annotated patch
        pull_request: Pull request being reviewed
        config: Review configuration (enabled categories, language)

    Returns:
        Prompt text
    """
    options = config.review_options
    enabled = [c for c in REVIEW_CATEGORIES if options.is_enabled(c)]
    patch = file.patch_with_lines_str or file.patch or ""

    sections = [
        f"Pull request: {pull_request.title}",
        f"File: {file.filename} ({file.status.value})",
        f"Review categories to consider: {', '.join(enabled)}",
        f"Write suggestions in: {config.language}",
        "",
        "Diff:",
        patch,
    ]
    if file.content:
        sections.extend(["", "Full file after the change:", file.content])
    return "\n".join(sections)


def build_pr_summary_prompt(
    pull_request: "PullRequest",
    files: list["FileChange"],
    custom_instructions: str = "",
) -> str:
    """Build the user prompt for a PR summary.

    Args:
        pull_request: Pull request being summarized
        files: Reviewed files
        custom_instructions: Team instructions for the summary

    Returns:
        Prompt text
    """
    lines = [
        f"Title: {pull_request.title}",
        f"Branches: {pull_request.source_branch} -> {pull_request.target_branch}",
        "",
        "Current description:",
        pull_request.body or "(empty)",
        "",
        "Changed files:",
    ]
    for file in files:
        lines.append(f"- {file.filename} (+{file.additions} -{file.deletions})")
        if file.patch:
            lines.append(file.patch)
    if custom_instructions:
        lines.extend(["", "Team instructions:", custom_instructions])
    return "\n".join(lines)


# =============================================================================
# Comment Analysis Prompts
# =============================================================================


def build_comments_prompt(comments: list["UncategorizedComment"]) -> str:
    """Build the user prompt listing review comments (filter and categorize)."""
    return "Comments:\n" + _dump([c.to_dict() for c in comments])


def build_rules_generation_prompt(
    comments: list["UncategorizedComment"],
    library_rules: list["ReviewRule"],
) -> str:
    """Build the user prompt for rule generation.

    Args:
        comments: Relevant review comments
        library_rules: Known library rules that may be reused

    Returns:
        Prompt text
    """
    library = [
        {"uuid": r.uuid, "title": r.title, "rule": r.rule, "severity": r.severity.value}
        for r in library_rules
    ]
    return (
        "Comments:\n"
        + _dump([c.to_dict() for c in comments])
        + "\n\nLibrary rules:\n"
        + _dump(library)
    )


def build_duplicate_filter_prompt(
    new_rules: list["ReviewRule"],
    existing_rules: list["ReviewRule"],
) -> str:
    """Build the user prompt comparing new rules with existing ones."""
    return (
        "New rules:\n"
        + _dump([{"uuid": r.uuid, "title": r.title, "rule": r.rule} for r in new_rules])
        + "\n\nExisting rules:\n"
        + _dump([{"title": r.title, "rule": r.rule} for r in existing_rules])
    )


def build_quality_filter_prompt(rules: list["ReviewRule"]) -> str:
    """Build the user prompt for the rule quality filter."""
    return "Rules:\n" + _dump([r.to_dict() for r in rules])
