"""
Rendering engine boundary.

The engine presents one unit at a time, emits a TrialDataEvent for each
completed unit through on_data_update, and hands the frozen DataCollection
to on_finish once the plan is exhausted.

ScriptedEngine presents units headlessly against a responder (a simulated
participant). It backs pilots, mock-mode dry runs and tests.
"""

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from .trial import TrialDescriptor
from .trial_data import DataCollection, TrialDataEvent

logger = logging.getLogger(__name__)

DataUpdateCallback = Callable[[TrialDataEvent], None]
FinishCallback = Callable[[DataCollection], None]


@dataclass(frozen=True)
class Response:
    """A participant's keypress (key=None means no response before timeout)."""
    key: Optional[str]
    rt: Optional[float] = None  # ms


Responder = Callable[[TrialDescriptor, int], Optional[Response]]


class Engine(ABC):
    """
    Abstract rendering engine.

    Subclasses:
    - ScriptedEngine: Headless presentation with simulated responses
    """

    @abstractmethod
    def run(self, units: Sequence[TrialDescriptor], on_data_update: DataUpdateCallback,
            on_finish: FinishCallback) -> DataCollection:
        """
        Present all units in order.

        Blocks until the last unit completes. on_data_update is called once
        per unit, in order; on_finish is called exactly once, after the last
        on_data_update.

        Args:
            units: Flattened plan from Timeline.build()
            on_data_update: Callback receiving each TrialDataEvent
            on_finish: Callback receiving the frozen DataCollection

        Returns:
            The frozen DataCollection
        """
        pass


class ScriptedEngine(Engine):
    """
    Headless engine driven by a responder function.

    Time is simulated: each unit advances time_elapsed by its reaction time
    (or its trial_duration when there is no response) plus post_trial_gap.
    """

    def __init__(self, responder: Optional[Responder] = None):
        """
        Args:
            responder: Callable(descriptor, trial_index) -> Response or None
                       (default: always correct at 500 ms)
        """
        self.responder = responder or correct_responder()

    def run(self, units, on_data_update, on_finish) -> DataCollection:
        collection = DataCollection()
        elapsed = 0.0

        logger.info(f"ScriptedEngine: presenting {len(units)} units")
        for index, unit in enumerate(units):
            event = self._present(unit, index, elapsed)
            elapsed = event.time_elapsed
            collection.append(event)
            on_data_update(event)

        collection.freeze()
        on_finish(collection)
        return collection

    def _present(self, unit: TrialDescriptor, index: int, elapsed: float) -> TrialDataEvent:
        """Present one unit and build its data event."""
        duration = unit.resolve('trial_duration')
        gap = unit.resolve('post_trial_gap') or 0

        response = self.responder(unit, index) if unit.accepts_response() else None
        key = response.key if response else None
        rt = response.rt if response and response.key is not None else None

        if rt is not None:
            elapsed += rt
        elif duration is not None:
            elapsed += duration
        elapsed += gap

        tags = {k: v for k, v in unit.data.items() if k not in ('task', 'save_incrementally')}
        if duration is not None:
            tags['trial_duration'] = duration

        return TrialDataEvent(
            trial_index=index,
            trial_type=unit.trial_type,
            task=unit.task,
            response=key,
            correct=unit.is_correct(key) if unit.accepts_response() else None,
            rt=rt,
            time_elapsed=elapsed,
            save_incrementally=unit.save_incrementally,
            tags=tags,
        )


def correct_responder(rt: float = 500.0) -> Responder:
    """Responder that always presses the expected key (or the first allowed key)."""
    def respond(unit: TrialDescriptor, index: int) -> Response:
        expected = unit.expected_response()
        if expected is None:
            expected = _first_choice(unit)
        elif not isinstance(expected, str):
            expected = expected[0]
        return Response(expected, rt)
    return respond


def random_responder(rng: Optional[random.Random] = None, accuracy: float = 0.8,
                     rt_range: Sequence[float] = (300.0, 900.0)) -> Responder:
    """
    Simulated participant for pilots.

    Args:
        rng: Random generator
        accuracy: Probability of pressing the expected key
        rt_range: (min, max) reaction time in ms
    """
    rng = rng or random.Random()

    def respond(unit: TrialDescriptor, index: int) -> Response:
        rt = round(rng.uniform(*rt_range))
        expected = unit.expected_response()
        if expected is None:
            return Response(_first_choice(unit), rt)
        keys = [expected] if isinstance(expected, str) else list(expected)
        if rng.random() < accuracy:
            return Response(rng.choice(keys), rt)
        choices = getattr(unit, 'choices', None)
        wrong = [k for k in choices if k not in keys] if not isinstance(choices, str) else []
        return Response(rng.choice(wrong) if wrong else f"not-{keys[0]}", rt)
    return respond


def scripted_responder(responses: Iterable[Optional[Response]]) -> Responder:
    """
    Responder that replays a fixed list, one entry per response-accepting unit.

    Raises:
        IndexError: if the plan asks for more responses than were scripted
    """
    queue: List[Optional[Response]] = list(responses)

    def respond(unit: TrialDescriptor, index: int) -> Optional[Response]:
        if not queue:
            raise IndexError(f"No scripted response left for trial {index}")
        return queue.pop(0)
    return respond


def _first_choice(unit: TrialDescriptor) -> str:
    choices = getattr(unit, 'choices', None)
    if choices and not isinstance(choices, str):
        return choices[0]
    return ' '
