"""
Debrief summarizer.

Aggregate accuracy and mean reaction time over response trials, for the
end-of-session debrief screen only.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

import pandas as pd

from .execution.trial_data import DataCollection, TrialDataEvent

RESPONSE_TASK = 'response'


@dataclass(frozen=True)
class DebriefSummary:
    """
    Attributes:
        accuracy: Percent correct, rounded (0 when there were no response trials)
        reaction_time: Mean rt of correct trials in ms, rounded (None = N/A)
        n_trials: Number of response trials
        n_correct: Number of correct response trials
    """
    accuracy: int
    reaction_time: Optional[int]
    n_trials: int
    n_correct: int

    def to_html(self) -> str:
        rt_text = f"{self.reaction_time}ms" if self.reaction_time is not None else "N/A"
        return (
            f"<p>You responded correctly on {self.accuracy}% of the trials.</p>"
            f"<p>Your average response time was {rt_text}.</p>"
        )


def summarize(data: Union[DataCollection, Iterable[Any]], task: str = RESPONSE_TASK) -> DebriefSummary:
    """
    Summarize a session's response trials.

    accuracy = round(100 * correct / total)
    reaction_time = round(mean(rt over correct trials))

    Rounding is half-up. With no response trials, accuracy is 0 and
    reaction_time is None; with no correct trials, reaction_time is None.

    Args:
        data: DataCollection, or an iterable of TrialDataEvents / records
        task: Task category to summarize

    Returns:
        DebriefSummary
    """
    df = pd.DataFrame(_records(data))
    if df.empty or 'task' not in df.columns:
        return DebriefSummary(accuracy=0, reaction_time=None, n_trials=0, n_correct=0)

    responses = df[df['task'] == task]
    n_trials = len(responses)
    if n_trials == 0:
        return DebriefSummary(accuracy=0, reaction_time=None, n_trials=0, n_correct=0)

    if 'correct' in responses.columns:
        correct_mask = responses['correct'].apply(lambda v: bool(pd.notna(v) and v))
    else:
        correct_mask = pd.Series(False, index=responses.index)
    correct = responses[correct_mask]
    n_correct = len(correct)

    reaction_time = None
    if n_correct and 'rt' in correct.columns:
        mean_rt = correct['rt'].astype(float).mean()
        if pd.notna(mean_rt):
            reaction_time = _round_half_up(mean_rt)

    return DebriefSummary(
        accuracy=_round_half_up(100 * n_correct / n_trials),
        reaction_time=reaction_time,
        n_trials=n_trials,
        n_correct=n_correct,
    )


def _records(data) -> Iterable[Dict[str, Any]]:
    if isinstance(data, DataCollection):
        return data.values()
    return [item.to_record() if isinstance(item, TrialDataEvent) else dict(item) for item in data]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
