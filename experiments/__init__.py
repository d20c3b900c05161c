"""
Experiment definitions (trial specification sets).
"""

from .dot_motion import build_dot_motion_timeline

__all__ = ['build_dot_motion_timeline']
