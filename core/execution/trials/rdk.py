"""
RandomDotKinematogram trial type.

Random-dot motion display with one or more apertures. Per-aperture
parameters accept either a single value (applied to every aperture) or a
list with exactly one entry per aperture.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..trial import ALL_KEYS, Choices, TrialDescriptor, freeze_sequence

# Parameters that may be given once or once per aperture
PER_APERTURE_PARAMETERS = (
    'rdk_type',
    'aperture_type',
    'aperture_width',
    'aperture_height',
    'aperture_center_x',
    'aperture_center_y',
    'number_of_dots',
    'coherence',
    'coherent_direction',
    'move_distance',
    'dot_color',
    'dot_radius',
)

RDK_TYPES = range(1, 7)
APERTURE_TYPES = range(1, 5)


@dataclass(frozen=True, eq=False)
class RandomDotKinematogram(TrialDescriptor):
    """
    Random-dot kinematogram (RDK) trial.

    Example:
        trial = RandomDotKinematogram(
            number_of_apertures=3,
            correct_choice='a',
            move_distance=[0, 1, 1],
            dot_color=['yellow', 'yellow', 'blue'],
            number_of_dots=[150, 50, 200],
            aperture_width=500,
            trial_duration=10000,
        )
    """

    trial_type = 'rdk'

    number_of_apertures: int = 1
    choices: Choices = ALL_KEYS
    correct_choice: Optional[Choices] = None
    response_ends_trial: bool = True
    rdk_type: Any = 3
    aperture_type: Any = 2
    aperture_width: Any = 600
    aperture_height: Any = 400
    aperture_center_x: Any = None
    aperture_center_y: Any = None
    number_of_dots: Any = 300
    coherence: Any = 0.5
    coherent_direction: Any = 0
    move_distance: Any = 1
    dot_color: Any = 'white'
    dot_radius: Any = 2
    trial_duration: Optional[Any] = 500

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, 'choices', freeze_sequence(self.choices))
        object.__setattr__(self, 'correct_choice', freeze_sequence(self.correct_choice))
        for name in PER_APERTURE_PARAMETERS:
            object.__setattr__(self, name, freeze_sequence(getattr(self, name)))

    def accepts_response(self) -> bool:
        return True

    def expected_response(self) -> Optional[Choices]:
        if self.correct_choice is not None:
            return self.correct_choice
        return super().expected_response()

    def aperture(self, index: int) -> Dict[str, Any]:
        """
        Resolve per-aperture parameters for one aperture.

        Args:
            index: Aperture index (0-based)

        Returns:
            {parameter_name: value} with scalar parameters broadcast
        """
        if not 0 <= index < self.number_of_apertures:
            raise IndexError(f"Aperture {index} out of range (0..{self.number_of_apertures - 1})")
        resolved = {}
        for name in PER_APERTURE_PARAMETERS:
            value = getattr(self, name)
            resolved[name] = value[index] if _is_per_aperture(value) else value
        return resolved

    def validate(self) -> List[str]:
        errors = super().validate()

        if not isinstance(self.number_of_apertures, int) or self.number_of_apertures < 1:
            errors.append(f"number_of_apertures must be a positive integer, got {self.number_of_apertures!r}")
            return errors

        for name in PER_APERTURE_PARAMETERS:
            value = getattr(self, name)
            if _is_per_aperture(value) and len(value) != self.number_of_apertures:
                errors.append(
                    f"{name} has {len(value)} values but number_of_apertures is "
                    f"{self.number_of_apertures}"
                )

        errors.extend(_check_range('rdk_type', self.rdk_type, RDK_TYPES))
        errors.extend(_check_range('aperture_type', self.aperture_type, APERTURE_TYPES))

        errors.extend(self._validate_choices(self.choices))
        if self.correct_choice is not None and not isinstance(self.choices, str):
            expected = [self.correct_choice] if isinstance(self.correct_choice, str) else self.correct_choice
            missing = [key for key in expected if key not in self.choices]
            if missing:
                errors.append(f"correct_choice {missing!r} not among choices {list(self.choices)!r}")

        return errors


def _is_per_aperture(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str)


def _check_range(name: str, value: Any, allowed: range) -> List[str]:
    values = value if _is_per_aperture(value) else [value]
    bad = [v for v in values if v not in allowed]
    if bad:
        return [f"{name} must be in {allowed.start}..{allowed.stop - 1}, got {bad!r}"]
    return []
