"""
Run ledger: in-memory history of completed runs.

Records are kept most-recent-first. A non-zero limit turns the ledger into
a ring buffer that drops the oldest record once full.
"""

from collections import deque
from typing import Deque, Dict, List, Optional

from .models import RunRecord, RunStatus


class RunLedger:
    """Most-recent-first history of run records."""

    def __init__(self, limit: int = 0):
        self.limit = limit
        self._records: Deque[RunRecord] = deque(maxlen=limit or None)

    def append(self, record: RunRecord) -> None:
        self._records.appendleft(record)

    def get(self, run_id: str) -> Optional[RunRecord]:
        for record in self._records:
            if record.id == run_id:
                return record
        return None

    def records(self) -> List[RunRecord]:
        return list(self._records)

    def page(self, offset: int = 0, limit: int = 20) -> List[RunRecord]:
        """Return one page of history, newest first."""
        if offset < 0 or limit < 0:
            raise ValueError("offset and limit must be non-negative")
        return list(self._records)[offset:offset + limit]

    def stats(self) -> Dict[str, int]:
        """Pass/fail counts over the retained history."""
        passed = sum(1 for r in self._records if r.status == RunStatus.PASSED)
        return {
            "total": len(self._records),
            "passed": passed,
            "failed": len(self._records) - passed,
        }

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))
