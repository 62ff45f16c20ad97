"""Personal learning feed: AI-generated articles with reading history."""

__version__ = "0.1.0"
