"""cc-grep: substring search over Claude Code session history."""

__version__ = "0.1.0"
