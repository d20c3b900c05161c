"""
Concrete trial descriptor types.

Available types:
- HtmlKeyboardResponse: HTML stimulus, keyboard response
- ImageKeyboardResponse: Image stimulus, keyboard response
- Preload: Asset preloading step
- RandomDotKinematogram: Random-dot motion display
"""

from .html_keyboard import HtmlKeyboardResponse
from .image_keyboard import ImageKeyboardResponse
from .preload import Preload
from .rdk import RandomDotKinematogram

# Descriptor registry for deserialization
TRIAL_TYPES = {
    cls.trial_type: cls
    for cls in (HtmlKeyboardResponse, ImageKeyboardResponse, Preload, RandomDotKinematogram)
}


def descriptor_from_dict(data: dict):
    """
    Create descriptor instance from dictionary.

    Args:
        data: Dictionary with 'type' key and type-specific parameters

    Returns:
        TrialDescriptor instance
    """
    trial_type = data.get('type')
    if trial_type not in TRIAL_TYPES:
        raise ValueError(f"Unknown trial type: {trial_type}")

    return TRIAL_TYPES[trial_type].from_dict(data)


__all__ = [
    'HtmlKeyboardResponse',
    'ImageKeyboardResponse',
    'Preload',
    'RandomDotKinematogram',
    'TRIAL_TYPES',
    'descriptor_from_dict',
]
