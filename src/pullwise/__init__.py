"""Pullwise - automated pull request reviews.

Pullwise reviews the changed files of a pull request with an LLM, posts
line comments and a summary on the code hosting platform, and learns a
team's review preferences from the comments humans left on past pull
requests.

Main parts:
- branches: Branch review expressions
- pipeline: Stage pipeline framework
- review: The code review pipeline
- comments: Comment analysis and rule generation
- platforms: Code hosting adapters
"""

__version__ = "0.1.0"
__author__ = "Pullwise Contributors"
