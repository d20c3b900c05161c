"""
REST persistence backend.

Layout on the server:
    POST {endpoint}/participants/{participant}/sessions/{session}/trials    one record
    POST {endpoint}/participants/{participant}/sessions/{session}/complete  all records

Transient connection errors are retried inside the adapter (mounted
HTTPAdapter); callers only ever see the final outcome.
"""

import logging
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter

from config.session import UserInfo
from .adapter import PersistenceAdapter, Record

logger = logging.getLogger(__name__)


class HttpStore(PersistenceAdapter):
    """
    Persists records to a REST endpoint with requests.
    """

    def __init__(self, endpoint: str, user: UserInfo, api_key: str = '',
                 timeout: float = 5.0, max_retries: int = 2, max_workers: int = 4,
                 session: Optional[requests.Session] = None):
        """
        Args:
            endpoint: Base URL (e.g., 'https://store.example.org/api')
            user: Participant identity the records are filed under
            api_key: Sent as a bearer token when set
            timeout: Per-request timeout in seconds
            max_retries: Connection-level retries per request
            max_workers: Number of concurrent background writes
            session: Preconfigured requests.Session (default: new session)
        """
        super().__init__(max_workers=max_workers)
        if not endpoint:
            raise ValueError("HttpStore requires an endpoint URL")

        self.endpoint = endpoint.rstrip('/')
        self.user = user
        self.timeout = timeout

        self.session = session or requests.Session()
        retry_adapter = HTTPAdapter(max_retries=max_retries)
        self.session.mount('http://', retry_adapter)
        self.session.mount('https://', retry_adapter)
        if api_key:
            self.session.headers['Authorization'] = f"Bearer {api_key}"

    @property
    def session_url(self) -> str:
        participant = self.user.prolific_pid or 'anonymous'
        session = self.user.session_id or 'default'
        return f"{self.endpoint}/participants/{participant}/sessions/{session}"

    def _write_partial(self, record: Record):
        response = self.session.post(
            f"{self.session_url}/trials",
            json={'user': self.user.to_dict(), 'record': record},
            timeout=self.timeout
        )
        response.raise_for_status()
        logger.debug(f"HttpStore: trial {record.get('trial_index')} saved ({response.status_code})")

    def _write_complete(self, records: List[Record]):
        response = self.session.post(
            f"{self.session_url}/complete",
            json={'user': self.user.to_dict(), 'records': records},
            timeout=self.timeout
        )
        response.raise_for_status()
        logger.info(f"HttpStore: session saved ({len(records)} records, {response.status_code})")

    def shutdown(self, wait: bool = True):
        super().shutdown(wait=wait)
        self.session.close()

    def __repr__(self):
        return f"HttpStore(url='{self.session_url}')"
