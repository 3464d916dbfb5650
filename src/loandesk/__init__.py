"""loandesk — loan and inventory consistency engine for a lending library."""

__version__ = "0.3.0"
