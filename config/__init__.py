"""
Configuration structures for the session runner.

This module contains the data classes resolved once at startup: participant
identity, persistence backend settings and the session configuration.
"""

from .session import UserInfo, StoreSettings, SessionConfig, SessionConfigHandler

__all__ = ['UserInfo', 'StoreSettings', 'SessionConfig', 'SessionConfigHandler']
