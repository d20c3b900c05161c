"""
Execution module for the session runner.

This module contains the timeline model and the engine boundary:
- TrialDescriptor: Base class for all trial types
- ProceduralBlock: Named, repeated, optionally shuffled group of units
- Timeline: Top-level unit sequence, builds the executable plan
- TrialDataEvent / DataCollection: Per-unit data and the session's data set
- Engine / ScriptedEngine: Rendering engine boundary
"""

from .trial import TrialDescriptor, ALL_KEYS, NO_KEYS
from .block import ProceduralBlock
from .timeline import Timeline
from .trial_data import TrialDataEvent, DataCollection
from .engine import Engine, ScriptedEngine, Response

__all__ = [
    'TrialDescriptor',
    'ALL_KEYS',
    'NO_KEYS',
    'ProceduralBlock',
    'Timeline',
    'TrialDataEvent',
    'DataCollection',
    'Engine',
    'ScriptedEngine',
    'Response',
]
