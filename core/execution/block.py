"""
ProceduralBlock class for the session runner.

A procedural block is a named sub-timeline: an ordered list of trial
descriptors and nested blocks, repeated a number of times and optionally
shuffled on every repetition.
"""

import random
from typing import Any, Dict, List, Optional, Union

from .randomization import shuffle
from .trial import TrialDescriptor

Unit = Union[TrialDescriptor, 'ProceduralBlock']


class ProceduralBlock:
    """
    A named, possibly randomized, possibly repeated group of units.

    Examples:
    - Test procedure: 6 (fixation, cue, RDK) groups, shuffled
    - Practice block: 4 trials in fixed order, repeated twice

    Flattening rules:
    - Members are expanded depth-first
    - With randomize_order, member order is permuted independently on each
      repetition; a nested block always stays contiguous, so no unit ever
      moves across a block boundary
    - Descriptors are tagged with the block path ('block' data tag)
    """

    def __init__(self, name: str, timeline: Optional[List[Unit]] = None,
                 repetitions: int = 1, randomize_order: bool = False):
        """
        Initialize block.

        Args:
            name: Human-readable block name (e.g., "test_procedure")
            timeline: Member units in declaration order
            repetitions: Number of times the members are run (>= 1)
            randomize_order: Shuffle members on each repetition
        """
        self.name = name
        self.timeline: List[Unit] = list(timeline or [])
        self.repetitions = repetitions
        self.randomize_order = randomize_order

    def add_unit(self, unit: Unit, index: Optional[int] = None):
        """
        Add a member unit.

        Args:
            unit: TrialDescriptor or nested ProceduralBlock
            index: Position to insert (None = append to end)
        """
        if index is None:
            self.timeline.append(unit)
        else:
            self.timeline.insert(index, unit)

    def remove_unit(self, index: int):
        del self.timeline[index]

    def validate(self) -> List[str]:
        """
        Validate block configuration, including all members.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not self.timeline:
            errors.append("Block has no member units")

        if not isinstance(self.repetitions, int) or self.repetitions < 1:
            errors.append(f"repetitions must be an integer >= 1, got {self.repetitions!r}")

        for i, unit in enumerate(self.timeline):
            if isinstance(unit, (TrialDescriptor, ProceduralBlock)):
                label = unit.name if isinstance(unit, ProceduralBlock) else unit.trial_type
                errors.extend([f"Unit {i} ({label}): {e}" for e in unit.validate()])
            else:
                errors.append(f"Unit {i}: expected a trial descriptor or block, got {type(unit).__name__}")

        return errors

    def get_unit_count(self) -> int:
        """
        Number of units this block flattens to.

        Returns:
            sum(member counts) * repetitions
        """
        per_repetition = sum(
            unit.get_unit_count() if isinstance(unit, ProceduralBlock) else 1
            for unit in self.timeline
        )
        return per_repetition * self.repetitions

    def flatten(self, rng: Optional[random.Random] = None,
                parent_path: str = '') -> List[TrialDescriptor]:
        """
        Expand this block into its executable unit sequence.

        Args:
            rng: Random generator used for randomize_order
            parent_path: Path of the enclosing block ('' at top level)

        Returns:
            Descriptors in execution order
        """
        path = f"{parent_path}/{self.name}" if parent_path else self.name
        units: List[TrialDescriptor] = []

        for _ in range(self.repetitions):
            members = shuffle(self.timeline, rng) if self.randomize_order else self.timeline
            for unit in members:
                if isinstance(unit, ProceduralBlock):
                    units.extend(unit.flatten(rng, path))
                else:
                    units.append(unit.with_data(block=path))

        return units

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize block to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            'name': self.name,
            'timeline': [unit.to_dict() for unit in self.timeline],
            'repetitions': self.repetitions,
            'randomize_order': self.randomize_order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProceduralBlock':
        """
        Deserialize block from dictionary.

        Args:
            data: Dictionary representation

        Returns:
            ProceduralBlock instance
        """
        return cls(
            name=data['name'],
            timeline=[unit_from_dict(unit_data) for unit_data in data.get('timeline', [])],
            repetitions=data.get('repetitions', 1),
            randomize_order=data.get('randomize_order', False),
        )

    def __repr__(self):
        return (f"ProceduralBlock(name='{self.name}', members={len(self.timeline)}, "
                f"repetitions={self.repetitions}, randomize_order={self.randomize_order})")


def unit_from_dict(data: Dict[str, Any]) -> Unit:
    """
    Create a unit (descriptor or nested block) from dictionary.

    Blocks are recognised by their 'timeline' key.
    """
    if 'timeline' in data:
        return ProceduralBlock.from_dict(data)

    from .trials import descriptor_from_dict  # Import here to avoid circular imports
    return descriptor_from_dict(data)
