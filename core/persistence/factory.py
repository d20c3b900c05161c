"""
Backend selection from session configuration.
"""

import logging

from config.session import SessionConfig
from .adapter import PersistenceAdapter
from .csv_store import CsvStore
from .http_store import HttpStore
from .mock_store import MockStore

logger = logging.getLogger(__name__)


def create_store(config: SessionConfig) -> PersistenceAdapter:
    """
    Create the persistence adapter selected by config.

    Args:
        config: Resolved session configuration

    Returns:
        PersistenceAdapter instance

    Raises:
        ValueError: for an unknown backend name
    """
    backend = config.store_backend
    settings = config.store
    logger.info(f"Persistence backend: {backend}")

    if backend == 'mock':
        return MockStore()
    if backend == 'http':
        return HttpStore(
            endpoint=settings.endpoint,
            user=config.user,
            api_key=settings.api_key,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
        )
    if backend == 'csv':
        return CsvStore(
            output_dir=settings.output_dir,
            experiment_name=config.experiment_name,
            user=config.user,
        )
    raise ValueError(f"Unknown store backend: {backend}")
