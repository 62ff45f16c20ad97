"""Content generation, reading history and saved content."""
