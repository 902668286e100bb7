"""LLM-backed file review and PR summary generation."""

import logging
from typing import Any

from pullwise.llm.client import LLMClient, LLMError
from pullwise.llm.prompts import (
    build_file_review_prompt,
    build_pr_summary_prompt,
    get_system_prompt,
)
from pullwise.models.pull_request import FileChange, FileStatus, PullRequest
from pullwise.models.review_config import CodeReviewConfig
from pullwise.models.suggestion import (
    CodeSuggestion,
    FileAnalysisResult,
    OverallComment,
    PriorityStatus,
)
from pullwise.review.patch import changed_line_ranges, is_within_changed_lines

logger = logging.getLogger(__name__)


class FileReviewAnalyzer:
    """Reviews changed files and writes PR summaries with an LLM."""

    def __init__(self, llm: LLMClient) -> None:
        """Initialize the analyzer.

        Args:
            llm: LLM client used for all calls
        """
        self.llm = llm

    def analyze_file(
        self,
        file: FileChange,
        pull_request: PullRequest,
        config: CodeReviewConfig,
    ) -> FileAnalysisResult:
        """Review one changed file.

        Suggestions are discarded when they point outside the changed lines
        or belong to a disabled category.

        Args:
            file: Changed file (patch annotated with line numbers)
            pull_request: Pull request under review
            config: Resolved review configuration

        Returns:
            FileAnalysisResult for the file

        Raises:
            LLMError: If the LLM call fails or returns unusable output
        """
        if file.status == FileStatus.REMOVED or not (file.patch_with_lines_str or file.patch):
            logger.debug("Nothing to review in %s", file.filename)
            return FileAnalysisResult.empty(file.filename)

        payload = self.llm.complete_json(
            build_file_review_prompt(file, pull_request, config),
            system_prompt=get_system_prompt("file_review"),
        )
        if not isinstance(payload, dict):
            raise LLMError(f"File review of {file.filename} did not return an object")

        suggestions = [
            self._to_suggestion(item, file)
            for item in payload.get("code_suggestions") or []
            if isinstance(item, dict)
        ]

        ranges = changed_line_ranges(file.patch)
        valid: list[CodeSuggestion] = []
        discarded: list[CodeSuggestion] = []
        for suggestion in suggestions:
            if not config.review_options.is_enabled(suggestion.label):
                suggestion.priority_status = PriorityStatus.DISCARDED_BY_CATEGORY
                discarded.append(suggestion)
            elif not is_within_changed_lines(
                ranges, suggestion.relevant_lines_start, suggestion.relevant_lines_end
            ):
                suggestion.priority_status = PriorityStatus.DISCARDED_BY_CODE_DIFF
                discarded.append(suggestion)
            else:
                valid.append(suggestion)

        summary = str(payload.get("overall_summary") or "").strip()
        logger.debug(
            "Reviewed %s: %d valid, %d discarded suggestions",
            file.filename,
            len(valid),
            len(discarded),
        )
        return FileAnalysisResult(
            file=file.filename,
            valid_suggestions=valid,
            discarded_suggestions=discarded,
            overall_comment=OverallComment(filepath=file.filename, summary=summary) if summary else None,
        )

    @staticmethod
    def _to_suggestion(item: dict[str, Any], file: FileChange) -> CodeSuggestion:
        suggestion = CodeSuggestion.from_dict(item, relevant_file=file.filename)
        # Suggestions always belong to the reviewed file
        suggestion.relevant_file = file.filename
        return suggestion

    def generate_pr_summary(
        self,
        pull_request: PullRequest,
        files: list[FileChange],
        custom_instructions: str = "",
    ) -> str:
        """Write a markdown summary of the pull request.

        Args:
            pull_request: Pull request under review
            files: Reviewed files
            custom_instructions: Team instructions for the summary

        Returns:
            Markdown summary

        Raises:
            LLMError: If the LLM call fails or returns no summary
        """
        payload = self.llm.complete_json(
            build_pr_summary_prompt(pull_request, files, custom_instructions),
            system_prompt=get_system_prompt("pr_summary"),
        )
        summary = payload.get("summary") if isinstance(payload, dict) else None
        if not summary:
            raise LLMError("PR summary response did not contain a summary")
        return str(summary).strip()
