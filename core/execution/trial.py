"""
TrialDescriptor base class for the session runner.

A descriptor is the declarative, immutable configuration of one trial:
stimulus parameters, duration, correct-response mapping and metadata tags.
Concrete trial types live in core.execution.trials.
"""

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Union

# Keyboard choice sentinels
ALL_KEYS = 'ALL_KEYS'
NO_KEYS = 'NO_KEYS'

Choices = Union[str, Sequence[str]]


@dataclass(frozen=True, eq=False)
class TrialDescriptor:
    """
    Immutable description of a single trial.

    Attributes:
        data: Metadata tags copied into the trial's data event
              (e.g., {'task': 'response', 'save_incrementally': True})
        trial_duration: Maximum duration in ms (None = until response).
                        May be a zero-argument callable, evaluated when the
                        trial is presented.
        post_trial_gap: Blank interval after the trial in ms

    Descriptors compare by identity; two equal-looking trials in a timeline
    are still two units.
    """

    trial_type: ClassVar[str] = 'trial'

    data: Mapping[str, Any] = field(default_factory=dict)
    trial_duration: Optional[Any] = None
    post_trial_gap: Optional[Any] = None

    def __post_init__(self):
        object.__setattr__(self, 'data', MappingProxyType(dict(self.data)))

    @property
    def task(self) -> Optional[str]:
        """Task category tag (e.g., 'response', 'fixation'), if any."""
        return self.data.get('task')

    @property
    def save_incrementally(self) -> bool:
        return bool(self.data.get('save_incrementally', False))

    def accepts_response(self) -> bool:
        """Does this trial collect a keyboard response?"""
        return False

    def expected_response(self) -> Optional[Choices]:
        """
        Key (or keys) that count as a correct response.

        Defaults to the 'correct_response' data tag; subclasses with a
        dedicated parameter override this.
        """
        return self.data.get('correct_response')

    def is_correct(self, response: Optional[str]) -> Optional[bool]:
        """
        Compare an observed response with the expected one.

        Returns:
            None if the trial has no expected response, otherwise whether
            response matches (a missing response is incorrect)
        """
        expected = self.expected_response()
        if expected is None:
            return None
        if response is None:
            return False
        if isinstance(expected, str):
            return response == expected
        return response in expected

    def resolve(self, name: str) -> Any:
        """
        Get a parameter value, evaluating dynamic (callable) parameters.

        Args:
            name: Parameter name (e.g., 'trial_duration')
        """
        value = getattr(self, name)
        return value() if callable(value) else value

    def with_data(self, **tags) -> 'TrialDescriptor':
        """
        Copy of this descriptor with extra data tags merged in.

        The original is left untouched.
        """
        merged = dict(self.data)
        merged.update(tags)
        return replace(self, data=merged)

    def validate(self) -> List[str]:
        """
        Validate descriptor configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        for name in ('trial_duration', 'post_trial_gap'):
            value = getattr(self, name)
            if value is None or callable(value):
                continue
            if not isinstance(value, (int, float)) or value < 0:
                errors.append(f"{name} must be a non-negative number of ms, got {value!r}")
        return errors

    @staticmethod
    def _validate_choices(choices: Choices) -> List[str]:
        if isinstance(choices, str):
            if choices not in (ALL_KEYS, NO_KEYS):
                return [f"choices must be ALL_KEYS, NO_KEYS or a list of keys, got {choices!r}"]
            return []
        if not choices:
            return ["choices list is empty"]
        if not all(isinstance(key, str) for key in choices):
            return [f"choices must be strings, got {list(choices)!r}"]
        return []

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize descriptor to dictionary.

        Raises:
            ValueError: if a parameter is dynamic (callables are not serializable)
        """
        result: Dict[str, Any] = {'type': self.trial_type}
        for f in fields(self):
            value = getattr(self, f.name)
            if callable(value):
                raise ValueError(f"{self.trial_type}.{f.name} is dynamic and cannot be serialized")
            if f.name == 'data':
                value = dict(value)
            elif isinstance(value, tuple):
                value = list(value)
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrialDescriptor':
        """
        Deserialize descriptor from dictionary.

        Unknown keys (including 'type') are ignored.
        """
        kwargs = {f.name: data[f.name] for f in fields(cls) if f.name in data}
        return cls(**kwargs)

    def __repr__(self):
        task = f", task={self.task!r}" if self.task else ""
        return f"{type(self).__name__}(type={self.trial_type!r}{task})"


def freeze_sequence(value: Any) -> Any:
    """Convert lists to tuples so list-valued parameters stay immutable."""
    if isinstance(value, list):
        return tuple(value)
    return value
