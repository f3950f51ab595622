"""
FIFO queue of pending run requests.

The queue itself never starts anything; the coordinator pops the head
whenever the execution slot becomes free.
"""

from collections import deque
from typing import Deque, Iterable, List, Optional, Tuple

from .models import RequestState, RunRequest


class ExecutionQueue:
    """Ordered list of run requests waiting for the execution slot."""

    def __init__(self):
        self._pending: Deque[RunRequest] = deque()

    def enqueue(self, requests: Iterable[RunRequest]) -> int:
        """Append requests to the tail, preserving their order."""
        count = 0
        for request in requests:
            request.state = RequestState.QUEUED
            self._pending.append(request)
            count += 1
        return count

    def pop_next(self) -> Optional[RunRequest]:
        if not self._pending:
            return None
        return self._pending.popleft()

    def cancel(self) -> List[RunRequest]:
        """Discard every pending request and return them."""
        discarded = list(self._pending)
        self._pending.clear()
        for request in discarded:
            request.state = RequestState.DISCARDED
        return discarded

    @property
    def pending(self) -> Tuple[RunRequest, ...]:
        return tuple(self._pending)

    def is_empty(self) -> bool:
        return not self._pending

    def __len__(self) -> int:
        return len(self._pending)
