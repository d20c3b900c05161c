"""
Trial data events and the session's collected data set.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import pandas as pd


@dataclass
class TrialDataEvent:
    """
    Data produced by one completed timeline unit.

    Non-response units (preload, fixation) still produce an event; their
    response, rt and correct fields stay None.
    """
    trial_index: int
    trial_type: str
    task: Optional[str] = None
    response: Optional[str] = None
    correct: Optional[bool] = None
    rt: Optional[float] = None              # Reaction time in ms
    time_elapsed: float = 0.0               # ms since session start
    save_incrementally: bool = False
    tags: Dict[str, Any] = field(default_factory=dict)  # Remaining descriptor data tags

    def to_record(self) -> Dict[str, Any]:
        """
        Flatten into a plain record for persistence.

        Descriptor tags come first so they can never shadow the observed fields.
        """
        record = dict(self.tags)
        record.update({
            'trial_index': self.trial_index,
            'trial_type': self.trial_type,
            'task': self.task,
            'response': self.response,
            'correct': self.correct,
            'rt': self.rt,
            'time_elapsed': self.time_elapsed,
            'save_incrementally': self.save_incrementally,
        })
        return record


class DataCollection:
    """
    Ordered, append-only collection of a session's data events.

    The rendering engine appends one event per unit and freezes the
    collection when the timeline is exhausted; afterwards it is a read-only
    view handed to the completion handler and the debrief summarizer.
    """

    def __init__(self, events: Optional[List[TrialDataEvent]] = None, frozen: bool = False):
        self._events: List[TrialDataEvent] = list(events or [])
        self._frozen = frozen

    @property
    def frozen(self) -> bool:
        return self._frozen

    def append(self, event: TrialDataEvent):
        """
        Add the next event.

        Raises:
            RuntimeError: if the collection has been frozen
        """
        if self._frozen:
            raise RuntimeError("DataCollection is read-only after the session finished")
        self._events.append(event)

    def freeze(self):
        self._frozen = True

    @property
    def events(self) -> List[TrialDataEvent]:
        return list(self._events)

    def values(self) -> List[Dict[str, Any]]:
        """Plain list of records, one per event."""
        return [event.to_record() for event in self._events]

    def filter(self, **criteria) -> 'DataCollection':
        """
        Events whose record matches every key=value criterion.

        Example:
            responses = data.filter(task='response')
        """
        matching = [
            event for event in self._events
            if all(event.to_record().get(key) == value for key, value in criteria.items())
        ]
        return DataCollection(matching, frozen=True)

    def count(self) -> int:
        return len(self._events)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Collected data as a DataFrame (one row per event).
        """
        return pd.DataFrame(self.values())

    def to_csv(self, path: str):
        """
        Write collected data to CSV.

        Args:
            path: Output file path
        """
        self.to_dataframe().to_csv(path, index=False)

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.values(), indent=indent, default=str)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TrialDataEvent]:
        return iter(list(self._events))

    def __repr__(self):
        return f"DataCollection(events={len(self._events)}, frozen={self._frozen})"
