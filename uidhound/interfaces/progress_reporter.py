"""Progress reporting interface for topic cache population."""

from typing import Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class ProgressReporter(Protocol):
    """Receives human-readable status messages while the cache populates.

    Interactive front ends forward messages to their progress UI; without
    one the topic cache logs them, and tests use the recording implementation.
    """

    def report(self, message: str) -> None:
        """Report a progress message."""
        ...


class LoggingProgressReporter:
    """Forwards progress messages to the log."""

    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix

    def report(self, message: str) -> None:
        logger.info(f"{self._prefix}{message}")


class RecordingProgressReporter:
    """Keeps every progress message, in order."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def report(self, message: str) -> None:
        self.messages.append(message)
