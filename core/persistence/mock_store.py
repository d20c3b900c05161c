"""
In-memory persistence backend.

Used when the mock-backend flag is on: records stay in process memory and
the debug panel reads them back through snapshot().
"""

import logging
import threading
import time
from typing import Any, Dict, List, Optional, Union

from .adapter import PersistenceAdapter, Record

logger = logging.getLogger(__name__)

Failure = Union[bool, BaseException, None]


class MockStore(PersistenceAdapter):
    """
    Thread-safe in-memory store with injectable failures.

    Example:
        store = MockStore(fail_complete=True)   # every save_complete rejects
        store = MockStore(latency=0.05)          # simulate network delay
    """

    def __init__(self, fail_partial: Failure = None, fail_complete: Failure = None,
                 latency: float = 0.0, max_workers: int = 4):
        """
        Args:
            fail_partial: True or an exception instance to reject save_partial
            fail_complete: True or an exception instance to reject save_complete
            latency: Seconds each write sleeps before completing
            max_workers: Number of concurrent background writes
        """
        super().__init__(max_workers=max_workers)
        self.fail_partial = fail_partial
        self.fail_complete = fail_complete
        self.latency = latency

        self._lock = threading.Lock()
        self.partial_records: List[Record] = []
        self.complete_records: List[List[Record]] = []
        self.partial_calls = 0
        self.complete_calls = 0

    def _write_partial(self, record: Record):
        with self._lock:
            self.partial_calls += 1
        self._simulate(self.fail_partial, "save_partial")
        with self._lock:
            self.partial_records.append(record)
        logger.debug(f"MockStore: stored partial record (trial_index={record.get('trial_index')})")

    def _write_complete(self, records: List[Record]):
        with self._lock:
            self.complete_calls += 1
        self._simulate(self.fail_complete, "save_complete")
        with self._lock:
            self.complete_records.append(records)
        logger.debug(f"MockStore: stored complete session ({len(records)} records)")

    def _simulate(self, failure: Failure, operation: str):
        if self.latency:
            time.sleep(self.latency)
        if isinstance(failure, BaseException):
            raise failure
        if failure:
            raise ConnectionError(f"MockStore: simulated {operation} failure")

    def snapshot(self) -> Dict[str, Any]:
        """
        Current store contents for the debug panel.

        Returns:
            {'partial': [...], 'complete': [...] or None}
        """
        with self._lock:
            return {
                'partial': list(self.partial_records),
                'complete': list(self.complete_records[-1]) if self.complete_records else None,
            }

    def clear(self):
        with self._lock:
            self.partial_records.clear()
            self.complete_records.clear()
            self.partial_calls = 0
            self.complete_calls = 0

    def __repr__(self):
        return (f"MockStore(partial={len(self.partial_records)}, "
                f"complete={len(self.complete_records)})")
