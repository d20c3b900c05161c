"""
Timeline class for the session runner.

Holds the top-level sequence of units and builds the flattened, executable
plan handed to the rendering engine.
"""

import logging
import random
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ConstructionError
from .block import ProceduralBlock, Unit, unit_from_dict
from .randomization import make_rng
from .trial import TrialDescriptor

logger = logging.getLogger(__name__)


class Timeline:
    """
    Ordered sequence of trial descriptors and procedural blocks.

    Top-level descriptors keep declaration order; blocks are flattened
    depth-first (see ProceduralBlock.flatten).

    The save-incrementally flag of each unit is resolved at build time:
    an explicit 'save_incrementally' data tag wins, otherwise the unit is
    saved incrementally when its task category is in save_incrementally_tasks.
    """

    def __init__(self, name: str = "Untitled Experiment", seed: Optional[int] = None,
                 save_incrementally_tasks: Iterable[str] = ()):
        """
        Initialize timeline.

        Args:
            name: Experiment name
            seed: Seed for block randomization (None = not reproducible)
            save_incrementally_tasks: Task categories saved after every trial
        """
        self.units: List[Unit] = []
        self.seed = seed
        self.save_incrementally_tasks = set(save_incrementally_tasks)

        # Experiment-level metadata
        self.metadata: Dict[str, Any] = {
            'name': name,
            'description': '',
        }

    @property
    def name(self) -> str:
        return self.metadata['name']

    def add_unit(self, unit: Unit, index: Optional[int] = None):
        """
        Add a unit to the timeline.

        Args:
            unit: TrialDescriptor or ProceduralBlock
            index: Position to insert (None = append to end)
        """
        if index is None:
            self.units.append(unit)
        else:
            self.units.insert(index, unit)

    def remove_unit(self, index: int):
        del self.units[index]

    def reorder_unit(self, old_index: int, new_index: int):
        """
        Move unit from old_index to new_index.
        """
        unit = self.units.pop(old_index)
        self.units.insert(new_index, unit)

    def validate(self) -> List[str]:
        """
        Validate all units in timeline.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if not self.units:
            errors.append("Timeline is empty")

        for i, unit in enumerate(self.units):
            if isinstance(unit, ProceduralBlock):
                errors.extend([f"Block {i} ({unit.name}): {e}" for e in unit.validate()])
            elif isinstance(unit, TrialDescriptor):
                errors.extend([f"Trial {i} ({unit.trial_type}): {e}" for e in unit.validate()])
            else:
                errors.append(f"Unit {i}: expected a trial descriptor or block, got {type(unit).__name__}")
        return errors

    def get_total_units(self) -> int:
        """
        Flattened unit count (number of data events a full run produces).
        """
        return sum(
            unit.get_unit_count() if isinstance(unit, ProceduralBlock) else 1
            for unit in self.units
        )

    def build(self, rng: Optional[random.Random] = None) -> List[TrialDescriptor]:
        """
        Build the executable plan.

        Args:
            rng: Random generator (default: seeded from self.seed)

        Returns:
            Flattened list of descriptors in execution order

        Raises:
            ConstructionError: if any unit is malformed
        """
        errors = self.validate()
        if errors:
            raise ConstructionError(errors)

        rng = rng or make_rng(self.seed)
        plan: List[TrialDescriptor] = []
        for unit in self.units:
            if isinstance(unit, ProceduralBlock):
                plan.extend(unit.flatten(rng))
            else:
                plan.append(unit)

        plan = [self._apply_save_policy(unit) for unit in plan]
        logger.info(f"Timeline '{self.name}' built: {len(plan)} units")
        return plan

    def _apply_save_policy(self, unit: TrialDescriptor) -> TrialDescriptor:
        if 'save_incrementally' in unit.data:
            return unit
        return unit.with_data(save_incrementally=unit.task in self.save_incrementally_tasks)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize timeline to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            'metadata': self.metadata,
            'seed': self.seed,
            'save_incrementally_tasks': sorted(self.save_incrementally_tasks),
            'timeline': [unit.to_dict() for unit in self.units],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Timeline':
        """
        Deserialize timeline from dictionary.

        Args:
            data: Dictionary representation

        Returns:
            Timeline instance
        """
        metadata = data.get('metadata', {})
        timeline = cls(
            name=metadata.get('name', 'Untitled Experiment'),
            seed=data.get('seed'),
            save_incrementally_tasks=data.get('save_incrementally_tasks', ()),
        )
        timeline.metadata.update(metadata)

        for unit_data in data.get('timeline', []):
            timeline.add_unit(unit_from_dict(unit_data))

        return timeline

    def __repr__(self):
        return f"Timeline(name='{self.name}', units={len(self.units)}, total={self.get_total_units()})"
