"""Topic cache, persistence and change watching services."""
