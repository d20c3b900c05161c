"""
HtmlKeyboardResponse trial type.

Shows an HTML stimulus and records a single keypress. Used for welcome and
instruction screens, cue screens and (with NO_KEYS) fixation crosses.
"""

from dataclasses import dataclass
from typing import Any, List

from ..trial import ALL_KEYS, NO_KEYS, Choices, TrialDescriptor, freeze_sequence


@dataclass(frozen=True, eq=False)
class HtmlKeyboardResponse(TrialDescriptor):
    """
    HTML stimulus with keyboard response.

    Example:
        fixation = HtmlKeyboardResponse(
            stimulus='<div style="font-size:60px;">+</div>',
            choices=NO_KEYS,
            trial_duration=500,
            data={'task': 'fixation'},
        )
    """

    trial_type = 'html-keyboard-response'

    stimulus: Any = ''
    choices: Choices = ALL_KEYS
    response_ends_trial: bool = True

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, 'choices', freeze_sequence(self.choices))

    def accepts_response(self) -> bool:
        return self.choices != NO_KEYS

    def validate(self) -> List[str]:
        errors = super().validate()
        if not callable(self.stimulus) and not isinstance(self.stimulus, str):
            errors.append(f"stimulus must be an HTML string, got {type(self.stimulus).__name__}")
        errors.extend(self._validate_choices(self.choices))
        if self.choices == NO_KEYS and self.trial_duration is None:
            errors.append("NO_KEYS trial needs a trial_duration, otherwise it never ends")
        return errors
