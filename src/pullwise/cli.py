"""Pullwise CLI interface.

Commands:
- check: Validate LLM provider and store availability
- init: Initialize Pullwise configuration
- review: Review the pull request of an event file
- branches: Check, validate and convert branch review expressions
- comments: Learn review parameters and rules from past comments

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log output
- --version: Show version and exit
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from pullwise import __version__
from pullwise.config import PullwiseConfig, create_default_config, load_config
from pullwise.utils.logging import configure_from_cli, get_logger

# Create Typer app
app = typer.Typer(
    name="pullwise",
    help="LLM-assisted pull request reviews",
    add_completion=False,
    no_args_is_help=True,
)
branches_app = typer.Typer(help="Branch review expressions", no_args_is_help=True)
comments_app = typer.Typer(help="Learn from past review comments", no_args_is_help=True)
app.add_typer(branches_app, name="branches")
app.add_typer(comments_app, name="comments")

# Global state
_config: PullwiseConfig | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pullwise {__version__}")
        raise typer.Exit()


def _get_config() -> PullwiseConfig:
    return _config if _config is not None else PullwiseConfig()


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2))


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output with timestamps"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress info messages (warnings and errors only)"),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option("--ci", help="Enable CI mode with JSON output"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Pullwise - automated pull request reviews.

    Reviews changed files with an LLM, posts line comments and a summary,
    and learns review preferences from past comments.
    """
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug("Loaded config from: %s", _config.config_path)
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except (ValueError, OSError) as e:
        _logger.error("Failed to load config: %s", e)
        raise typer.Exit(1)


# =============================================================================
# check command
# =============================================================================


@app.command()
def check(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON (default: ci.json_output)"),
    ] = False,
    skip_llm: Annotated[
        bool,
        typer.Option("--skip-llm", help="Skip LLM provider checks"),
    ] = False,
) -> None:
    """Validate that the review dependencies are reachable.

    Exit codes:
        0: All required dependencies available
        1: One or more required dependencies missing
        2: Only optional dependencies missing (warnings)
    """
    from pullwise.utils.preflight import PreflightChecker

    config = _get_config()
    json_output = json_output or config.ci.json_output
    result = PreflightChecker().check_all(
        config.llm,
        store_path=Path(config.store.path),
        skip_llm=skip_llm,
    )

    if json_output:
        _echo_json(result.to_dict())
    else:
        typer.echo("\n🔍 Preflight Check Results\n")
        for check_result in result.checks:
            status = "✅" if check_result.available else "❌"
            version_str = f" ({check_result.version})" if check_result.version else ""
            required_str = " [required]" if check_result.required else " [optional]"

            typer.echo(f"  {status} {check_result.name}{version_str}{required_str}")
            if check_result.available and check_result.path:
                typer.echo(f"     └─ {check_result.path}")
            elif not check_result.available:
                typer.echo(f"     └─ {check_result.message}")
        typer.echo()

    if result.errors:
        if not json_output:
            typer.echo("❌ Preflight check FAILED")
            for error in result.errors:
                typer.echo(f"   • {error}")
        raise typer.Exit(1)
    if result.warnings:
        if not json_output:
            typer.echo("⚠️  Preflight check passed with WARNINGS")
            for warning in result.warnings:
                typer.echo(f"   • {warning}")
        raise typer.Exit(2)
    if not json_output:
        typer.echo("✅ All preflight checks passed")
    raise typer.Exit(0)


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Initialize Pullwise configuration.

    Creates .pullwise/config.yaml with commented defaults.
    """
    pullwise_dir = Path(".pullwise")
    pullwise_dir.mkdir(exist_ok=True)
    config_file = pullwise_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error("Config already exists: %s", config_file)
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config())
    _logger.info("Created config: %s", config_file)

    typer.echo("\n✅ Pullwise configuration initialized")
    typer.echo(f"   Config: {config_file}")
    raise typer.Exit(0)


# =============================================================================
# review command
# =============================================================================


@app.command()
def review(
    event_file: Annotated[
        Path,
        typer.Argument(
            help="Pull request event JSON file",
            exists=True,
            dir_okay=False,
        ),
    ],
    platform: Annotated[
        str | None,
        typer.Option("--platform", "-p", help="Platform adapter (default: local)"),
    ] = None,
    report: Annotated[
        Path | None,
        typer.Option("--report", "-r", help="Write the actions taken to a JSON report"),
    ] = None,
    skip_preflight: Annotated[
        bool,
        typer.Option("--skip-preflight", help="Skip LLM provider checks"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the review outcome as JSON (default: ci.json_output)"),
    ] = False,
) -> None:
    """Review the pull request described by an event file.

    Exit codes:
        0: Review completed (or the event does not trigger a review)
        1: Error during the review
        2: Review skipped (warning)
    """
    from pullwise.llm.client import create_client
    from pullwise.pipeline.base import AutomationStatus
    from pullwise.platforms import (
        LocalCodeManagementAdapter,
        PlatformError,
        get_registry,
        load_event,
    )
    from pullwise.review import CodeReviewHandler
    from pullwise.store import ExecutionStore
    from pullwise.utils.preflight import PreflightChecker

    config = _get_config()
    json_output = json_output or config.ci.json_output

    try:
        event = load_event(event_file)
        adapter = get_registry().get(platform, event=event)
    except PlatformError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    if not adapter.check_available():
        _logger.error("Platform '%s' has no pull request to review", adapter.name)
        raise typer.Exit(1)

    if not skip_preflight:
        _logger.info("Running preflight checks...")
        preflight = PreflightChecker().check_all(config.llm, store_path=Path(config.store.path))
        if not preflight.success:
            _logger.error("Preflight checks failed:")
            for error in preflight.errors:
                _logger.error("  %s", error)
            raise typer.Exit(1)

    try:
        llm = create_client(config.llm)
    except ValueError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    handler = CodeReviewHandler(config, adapter, llm, ExecutionStore(Path(config.store.path)))

    try:
        context = handler.handle(event)
    except ValueError as e:
        _logger.error("Invalid event: %s", e)
        raise typer.Exit(1)

    if report is not None and isinstance(adapter, LocalCodeManagementAdapter):
        adapter.write_report(report)

    if context is None:
        if json_output:
            _echo_json({"status": "ignored", "action": event.get("action")})
        else:
            typer.echo(f"ℹ️  Action '{event.get('action')}' does not trigger a review")
        raise typer.Exit(0)

    status = context.status_info.status
    if json_output:
        _echo_json(
            {
                "status": status.value,
                "message": context.status_info.message,
                "files_reviewed": len(context.changed_files),
                "comments": len(context.line_comments),
                "discarded": len(context.discarded_suggestions),
                "last_analyzed_commit": context.last_analyzed_commit,
                "errors": [e.to_dict() for e in context.errors],
            }
        )
    else:
        typer.echo(
            f"\n📝 PR #{context.pull_request.number}: {status.value}"
            + (f" ({context.status_info.message})" if context.status_info.message else "")
        )
        typer.echo(f"   Files reviewed: {len(context.changed_files)}")
        typer.echo(f"   Comments posted: {len(context.line_comments)}")
        for error in context.errors:
            typer.echo(f"   ⚠️  [{error.stage}] {error.error}")

    if status == AutomationStatus.ERROR:
        raise typer.Exit(1)
    if status == AutomationStatus.SKIPPED:
        raise typer.Exit(1 if config.ci.fail_on_warning else 2)
    raise typer.Exit(0)


# =============================================================================
# branches commands
# =============================================================================


def _split_rules(expression: str) -> list[str]:
    return [rule.strip() for rule in expression.split(",") if rule.strip()]


@branches_app.command("check")
def branches_check(
    source: Annotated[str, typer.Argument(help="Source (head) branch")],
    target: Annotated[str, typer.Argument(help="Target (base) branch")],
    expression: Annotated[
        str,
        typer.Option("--expression", "-e", help="Comma separated branch rules"),
    ],
    default_branch: Annotated[
        str | None,
        typer.Option("--default-branch", "-d", help="Repository default branch"),
    ] = None,
) -> None:
    """Decide whether a PR from SOURCE into TARGET is reviewed.

    Exit codes:
        0: The PR is reviewed
        1: The PR is not reviewed
    """
    from pullwise.branches import (
        merge_base_branches,
        process_expression,
        should_review_branches,
        validate_expression,
    )

    validation = validate_expression(expression)
    if not validation.is_valid:
        for error in validation.errors:
            typer.echo(f"❌ {error}")
        raise typer.Exit(1)

    merged = merge_base_branches(_split_rules(expression), default_branch or target)
    decision = should_review_branches(source, target, process_expression(", ".join(merged)))

    if decision:
        typer.echo(f"✅ {source} -> {target} is reviewed")
        raise typer.Exit(0)
    typer.echo(f"⏭️  {source} -> {target} is not reviewed")
    raise typer.Exit(1)


@branches_app.command("validate")
def branches_validate(
    expression: Annotated[str, typer.Argument(help="Comma separated branch rules")],
) -> None:
    """Validate a branch expression."""
    from pullwise.branches import validate_expression

    validation = validate_expression(expression)
    if validation.is_valid:
        typer.echo("✅ Expression is valid")
        raise typer.Exit(0)

    typer.echo("❌ Expression is invalid")
    for error in validation.errors:
        typer.echo(f"   • {error}")
    raise typer.Exit(1)


@branches_app.command("convert")
def branches_convert(
    expression: Annotated[str, typer.Argument(help="Comma separated branch rules")],
) -> None:
    """Print the compiled rules of an expression and the expression they render back to."""
    from pullwise.branches import convert_config_to_expression, process_expression

    compiled = process_expression(expression)
    _echo_json(
        {
            **compiled.to_dict(),
            "expression": convert_config_to_expression(compiled),
        }
    )


# =============================================================================
# comments commands
# =============================================================================


def _load_pull_requests(path: Path) -> list[dict[str, Any]]:
    """Read past pull requests with their comments.

    Accepts a list of pull requests or an object with a ``pull_requests`` list.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _logger.error("Cannot read %s: %s", path, e)
        raise typer.Exit(1)

    if isinstance(data, dict):
        data = data.get("pull_requests", [])
    if not isinstance(data, list):
        _logger.error("%s must contain a list of pull requests", path)
        raise typer.Exit(1)
    return [pr for pr in data if isinstance(pr, dict)]


def _comment_service() -> Any:
    from pullwise.comments import CommentAnalysisService
    from pullwise.llm.client import create_client

    try:
        return CommentAnalysisService(create_client(_get_config().llm))
    except ValueError as e:
        _logger.error(str(e))
        raise typer.Exit(1)


PullRequestsArgument = Annotated[
    Path,
    typer.Argument(help="JSON file with past pull requests and their comments", exists=True, dir_okay=False),
]


@comments_app.command("categorize")
def comments_categorize(pull_requests: PullRequestsArgument) -> None:
    """Categorize past review comments by category and severity."""
    service = _comment_service()
    comments = service.process_comments(_load_pull_requests(pull_requests))
    if not comments:
        _echo_json([])
        raise typer.Exit(2)

    _echo_json([c.to_dict() for c in service.categorize_comments(comments)])


@comments_app.command("parameters")
def comments_parameters(
    pull_requests: PullRequestsArgument,
    alignment: Annotated[
        str | None,
        typer.Option("--alignment", "-a", help="Alignment level: low, medium, high"),
    ] = None,
) -> None:
    """Derive review parameters from past review comments."""
    from pullwise.models.rules import AlignmentLevel

    try:
        alignment_level = AlignmentLevel(alignment) if alignment else None
    except ValueError:
        _logger.error("Invalid alignment level: %s. Use low, medium or high", alignment)
        raise typer.Exit(1)

    service = _comment_service()
    comments = service.process_comments(_load_pull_requests(pull_requests))
    categorized = service.categorize_comments(comments) if comments else []
    if not categorized:
        _logger.warning("No categorized comments, parameters fall back to defaults")

    parameters = service.generate_code_review_parameters(categorized, alignment_level)
    _echo_json(parameters.to_dict())
    raise typer.Exit(0 if categorized else 2)


@comments_app.command("rules")
def comments_rules(
    pull_requests: PullRequestsArgument,
    existing: Annotated[
        Path | None,
        typer.Option("--existing", "-e", help="JSON file with the team's current rules", exists=True, dir_okay=False),
    ] = None,
) -> None:
    """Generate coding rules from past review comments."""
    from pullwise.models.rules import ReviewRule

    existing_rules: list[ReviewRule] = []
    if existing is not None:
        try:
            raw = json.loads(existing.read_text(encoding="utf-8"))
            existing_rules = [ReviewRule.from_dict(r) for r in raw if isinstance(r, dict)]
        except (OSError, ValueError, TypeError) as e:
            _logger.error("Cannot read rules from %s: %s", existing, e)
            raise typer.Exit(1)

    service = _comment_service()
    comments = service.process_comments(_load_pull_requests(pull_requests))
    rules = service.generate_rules(comments, existing_rules) if comments else []

    _echo_json([r.to_dict() for r in rules])
    raise typer.Exit(0 if rules else 2)


if __name__ == "__main__":
    app()
