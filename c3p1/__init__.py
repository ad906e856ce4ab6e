"""c3p1 - a conversational work-tracking assistant with scheduled tasks."""

__version__ = "0.1.0"
