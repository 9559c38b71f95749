"""In-memory topic index."""
