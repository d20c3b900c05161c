"""
ImageKeyboardResponse trial type.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..trial import ALL_KEYS, NO_KEYS, Choices, TrialDescriptor, freeze_sequence


@dataclass(frozen=True, eq=False)
class ImageKeyboardResponse(TrialDescriptor):
    """Image stimulus (path or URL) with keyboard response."""

    trial_type = 'image-keyboard-response'

    stimulus: str = ''
    stimulus_height: Optional[int] = None
    stimulus_width: Optional[int] = None
    choices: Choices = ALL_KEYS
    response_ends_trial: bool = True

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, 'choices', freeze_sequence(self.choices))

    def accepts_response(self) -> bool:
        return self.choices != NO_KEYS

    def validate(self) -> List[str]:
        errors = super().validate()
        if not self.stimulus:
            errors.append("Image stimulus path is empty")
        errors.extend(self._validate_choices(self.choices))
        for name in ('stimulus_height', 'stimulus_width'):
            value = getattr(self, name)
            if value is None:
                continue
            if not isinstance(value, (int, float)) or value <= 0:
                errors.append(f"{name} must be a positive number of px, got {value!r}")
        return errors
