"""
Persistence adapter base class.

Both save operations are fire-and-forget from the caller's point of view:
they return a concurrent.futures.Future immediately and the write happens
on a background thread. A future that finishes with an exception is a
rejected save.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class PersistenceAdapter(ABC):
    """
    Abstract remote store for trial records.

    Subclasses implement the blocking writes; this class runs them in a
    thread pool so overlapping save_partial calls for distinct records can
    be in flight at the same time. No cross-record ordering is guaranteed.

    Subclasses:
    - MockStore: In-memory store for development and tests
    - HttpStore: REST backend via requests
    - CsvStore: Local CSV files via pandas
    """

    def __init__(self, max_workers: int = 4):
        """
        Args:
            max_workers: Number of concurrent background writes
        """
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=type(self).__name__
        )
        self._shutdown = False

    def save_partial(self, record: Record) -> Future:
        """
        Persist one trial record (incremental save).

        Args:
            record: Plain record from TrialDataEvent.to_record()

        Returns:
            Future resolving to None, or failing with the backend error
        """
        return self._submit(self._write_partial, dict(record))

    def save_complete(self, records: Iterable[Record]) -> Future:
        """
        Persist the whole session's records in one operation (final save).

        Args:
            records: All records of the session, in order

        Returns:
            Future resolving to None, or failing with the backend error
        """
        return self._submit(self._write_complete, [dict(r) for r in records])

    def _submit(self, write: Callable[[Any], None], payload: Any) -> Future:
        if self._shutdown:
            logger.warning(f"{type(self).__name__} already shut down, rejecting save")
            future: Future = Future()
            future.set_exception(RuntimeError(f"{type(self).__name__} is shut down"))
            return future
        return self.executor.submit(write, payload)

    @abstractmethod
    def _write_partial(self, record: Record):
        """Blocking write of a single record. Raise on failure."""
        pass

    @abstractmethod
    def _write_complete(self, records: List[Record]):
        """Blocking write of the full record list. Raise on failure."""
        pass

    def shutdown(self, wait: bool = True):
        """
        Stop accepting saves and release the worker threads.

        Args:
            wait: Block until in-flight writes finish
        """
        self._shutdown = True
        self.executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
