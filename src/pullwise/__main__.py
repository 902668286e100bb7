"""Entry point for running Pullwise as a module.

Usage:
    python -m pullwise [command] [options]

Example:
    python -m pullwise review event.json --report review.json
    python -m pullwise check
"""

from pullwise.cli import app

if __name__ == "__main__":
    app()
