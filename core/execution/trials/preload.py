"""
Preload trial type.

Loads image assets before the first trial that needs them. Emits a data
event like any other unit but never collects a response.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from ..trial import TrialDescriptor, freeze_sequence


@dataclass(frozen=True, eq=False)
class Preload(TrialDescriptor):
    """Asset preloading step."""

    trial_type = 'preload'

    images: Sequence[str] = field(default_factory=tuple)

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, 'images', freeze_sequence(self.images))

    def validate(self) -> List[str]:
        errors = super().validate()
        if not all(isinstance(path, str) and path for path in self.images):
            errors.append(f"Preload images must be non-empty paths, got {list(self.images)!r}")
        return errors
