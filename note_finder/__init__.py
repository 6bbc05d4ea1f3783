"""note-finder: filter Markdown notes by name, tags, dates and tasks."""

__version__ = "0.1.0"
