"""
Log sink for the active run.

Keeps the ordered run output and fans each new line out to subscribers,
such as the CLI printer that follows a run live.
"""

import logging
from typing import Callable, List, Tuple

RUN_SEPARATOR = "-" * 40

LogSubscriber = Callable[[str], None]

logger = logging.getLogger(__name__)


class LogSink:
    """Ordered, append-only sequence of run output lines."""

    def __init__(self, scope_per_run: bool = False):
        self.scope_per_run = scope_per_run
        self._lines: List[str] = []
        self._subscribers: List[LogSubscriber] = []

    def append(self, line: str) -> None:
        self._lines.append(line)
        for subscriber in list(self._subscribers):
            try:
                subscriber(line)
            except Exception as e:
                logger.warning(f"Log subscriber failed: {e}")

    def extend(self, lines) -> None:
        for line in lines:
            self.append(line)

    def begin_run(self) -> None:
        """Mark the start of a new run, either by clearing or with a separator."""
        if self.scope_per_run:
            self._lines.clear()
        self.append(RUN_SEPARATOR)

    def subscribe(self, callback: LogSubscriber) -> Callable[[], None]:
        """
        Register a callback for every appended line.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> Tuple[str, ...]:
        return tuple(self._lines)

    def __len__(self) -> int:
        return len(self._lines)
