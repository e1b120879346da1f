"""AI Visibility Core: scores how a local business shows up in AI answers."""

__version__ = "1.0.0"
