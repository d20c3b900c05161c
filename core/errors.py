"""
Exception types for the session runner.

ConstructionError is fatal and raised before any unit runs. The persistence
errors are only ever logged; the runner never lets them reach the participant.
"""

from typing import Iterable


class SessionError(Exception):
    """Base class for all session runner errors."""


class ConstructionError(SessionError):
    """
    Raised when a timeline or trial descriptor is malformed.

    Carries every validation message so they can be reported together.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        details = "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(f"Timeline construction failed with {len(self.errors)} error(s):\n{details}")


class PersistenceError(SessionError):
    """Base class for failures reported by a persistence adapter."""


class IncrementalSaveError(PersistenceError):
    """A per-trial save failed. Logged, never retried, never surfaced."""


class FinalSaveError(PersistenceError):
    """The end-of-session save failed. Logged; the participant still exits normally."""
