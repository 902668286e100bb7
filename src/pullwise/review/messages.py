"""Status messages recorded when the review pipeline stops or changes mode."""

NO_CONFIG_IN_CONTEXT = "No config found in context"
CONFIG_VALIDATION_ERROR = "Error validating config"
FAILED_RESOLVE_CONFIG = "Failed to resolve config"
SKIPPED_BY_BASIC_RULES = "Skipped by basic rules (branch, title, draft or automation disabled)"

PROCESSING_MANUAL = "Processing review requested by command"
PROCESSING_AUTOMATIC = "Processing automatic review"
PROCESSING_AUTO_PAUSE = "Processing review under auto pause cadence"
FIRST_REVIEW_MANUAL = "First review of pull request under manual cadence"
MANUAL_REQUIRED_TO_START = "Manual cadence: comment a review command to start a review"
FIRST_REVIEW_AUTO_PAUSE = "First review of pull request under auto pause cadence"
PR_PAUSED_NEED_RESUME = "Reviews are paused for this pull request, a review command resumes them"
PR_PAUSED_BURST_PUSHES = "Reviews paused after a burst of pushes"

NO_FILES_IN_PR = "No files found in PR"
NO_FILES_AFTER_IGNORE = "No files to review after applying ignore paths"
TOO_MANY_FILES = "Too many files to review"

# Command users comment on a paused pull request
START_REVIEW_COMMAND = "@pullwise start-review"

