"""ClipBuddy: clipboard history with pins, tags and persistence."""

__version__ = "0.1.0"
