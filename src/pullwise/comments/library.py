"""Built-in library of review rules.

Rule generation may reuse these instead of writing new rules; a generated
rule keeps its uuid only when it matches one of them.
"""

from pullwise.models.review_config import SeverityLevel
from pullwise.models.rules import ReviewRule, RuleExample, RuleOrigin, RuleStatus


def _library_rule(uuid: str, title: str, rule: str, severity: SeverityLevel, why: str) -> ReviewRule:
    return ReviewRule(
        uuid=uuid,
        title=title,
        rule=rule,
        severity=severity,
        origin=RuleOrigin.LIBRARY,
        status=RuleStatus.ACTIVE,
        why_is_this_important=why,
    )


LIBRARY_RULES: list[ReviewRule] = [
    _library_rule(
        "5b6f1a53-2d6e-4c1f-9a77-0c1d8e6a2f01",
        "Do not swallow exceptions",
        "Catch blocks must handle, log or re-raise the error; empty handlers are not allowed.",
        SeverityLevel.HIGH,
        "Silent failures hide bugs and make incidents hard to diagnose.",
    ),
    _library_rule(
        "8c2e4f0b-7a1d-4b3e-8f55-1e2d3c4b5a02",
        "No hardcoded credentials",
        "Secrets, tokens and passwords must come from configuration or a secret store.",
        SeverityLevel.CRITICAL,
        "Credentials committed to source control leak to everyone with read access.",
    ),
    _library_rule(
        "1f3a5c7e-9b2d-4e6f-8a0c-2b4d6f8a0c03",
        "Parameterize database queries",
        "Build SQL with bound parameters, never by concatenating user input.",
        SeverityLevel.CRITICAL,
        "String-built queries are open to SQL injection.",
    ),
    _library_rule(
        "a4c6e8f0-1b3d-4f5a-9c7e-3d5f7a9c1e04",
        "Close resources deterministically",
        "Files, sockets and connections must be released with a context manager or finally block.",
        SeverityLevel.MEDIUM,
        "Leaked handles exhaust limits under load.",
    ),
    _library_rule(
        "d7e9f1a3-5c7e-4a9b-8d1f-4e6a8c0e2a05",
        "Avoid queries inside loops",
        "Fetch related records in one query instead of one query per loop iteration.",
        SeverityLevel.MEDIUM,
        "N+1 query patterns scale linearly with data size.",
    ),
    _library_rule(
        "e0f2a4c6-8e0a-4c2d-9f4b-5f7b9d1f3b06",
        "Name things for what they do",
        "Functions and variables must have descriptive names; avoid single letters outside short loops.",
        SeverityLevel.LOW,
        "Clear names make code reviewable without extra context.",
    ),
]

# Example attached to the credentials rule
LIBRARY_RULES[1].examples = [
    RuleExample(snippet='API_KEY = "sk-live-123"', is_correct=False),
    RuleExample(snippet='API_KEY = os.environ["API_KEY"]', is_correct=True),
]
