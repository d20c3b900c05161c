"""
Session-level configuration, resolved once at startup.

SessionConfig is immutable for the lifetime of a session. SessionConfigHandler
loads it from a JSON file merged over defaults, then applies environment
variable overrides.
"""

import copy
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qs, urlparse

logger = logging.getLogger(__name__)

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    'RDK_DEBUG': 'debug',
    'RDK_MOCK_STORE': 'mock_store',
    'RDK_COMPLETION_URL': 'completion_url',
    'RDK_COMPLETION_CODE': 'completion_code',
    'RDK_STORE_BACKEND': 'store.backend',
    'RDK_STORE_ENDPOINT': 'store.endpoint',
    'RDK_STORE_API_KEY': 'store.api_key',
}

TRUE_VALUES = {'1', 'true', 'yes', 'on'}


@dataclass(frozen=True)
class UserInfo:
    """
    Participant identity as passed by the recruitment platform.
    """
    prolific_pid: str = ''
    study_id: str = ''
    session_id: str = ''

    @classmethod
    def from_query(cls, url_or_query: str) -> 'UserInfo':
        """
        Read identity from a launch URL or bare query string.

        Example:
            UserInfo.from_query('https://host/?PROLIFIC_PID=p1&STUDY_ID=s1&SESSION_ID=x')
        """
        query = urlparse(url_or_query).query if '://' in url_or_query else url_or_query.lstrip('?')
        params = parse_qs(query)

        def first(key: str) -> str:
            return params.get(key, [''])[0]

        return cls(
            prolific_pid=first('PROLIFIC_PID'),
            study_id=first('STUDY_ID'),
            session_id=first('SESSION_ID'),
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class StoreSettings:
    """
    Persistence backend settings.

    Attributes:
        backend: 'mock', 'http' or 'csv' (mock_store=True forces 'mock')
        endpoint: Base URL for the http backend
        api_key: Bearer token for the http backend
        output_dir: Directory for the csv backend
        timeout: Request timeout in seconds
        max_retries: Connection retries per request
    """
    backend: str = 'mock'
    endpoint: str = ''
    api_key: str = ''
    output_dir: str = 'data'
    timeout: float = 5.0
    max_retries: int = 2


@dataclass(frozen=True)
class SessionConfig:
    """
    Everything the runner needs from the environment.

    Attributes:
        experiment_name: Used in filenames and logs
        debug: Development mode (inline exit notice, data display, verbose logs)
        mock_store: Use the in-memory store (enables debug panel refresh)
        completion_url: Where the participant is redirected at the end
        completion_code: Code shown in the exit notice (compensation proof)
        exit_delay: Seconds between the exit notice and the redirect
        display_data_delay: Seconds before collected data is shown in debug mode
        user: Participant identity
        store: Persistence backend settings
        seed: Randomization seed (None = fresh order per session)
    """
    experiment_name: str = 'dot_motion'
    debug: bool = False
    mock_store: bool = True
    completion_url: str = ''
    completion_code: str = ''
    exit_delay: float = 3.0
    display_data_delay: float = 3.0
    user: UserInfo = field(default_factory=UserInfo)
    store: StoreSettings = field(default_factory=StoreSettings)
    seed: Optional[int] = None

    @property
    def store_backend(self) -> str:
        return 'mock' if self.mock_store else self.store.backend

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SessionConfig':
        """
        Build config from a (possibly partial) dictionary.

        Unknown keys are ignored.
        """
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if isinstance(values.get('user'), Mapping):
            values['user'] = UserInfo(**values['user'])
        if isinstance(values.get('store'), Mapping):
            values['store'] = StoreSettings(**values['store'])
        return cls(**values)


class SessionConfigHandler:
    """
    Loads session configuration from JSON with defaults and env overrides.

    Precedence (lowest to highest): DEFAULT_CONFIG, JSON file, environment.
    """

    DEFAULT_CONFIG = SessionConfig().to_dict()

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config_path: Path to JSON config (None = defaults only)
            environ: Environment mapping (default: os.environ)
        """
        self.config_path = Path(config_path) if config_path else None
        self.environ = os.environ if environ is None else environ
        self.config = self.load()

    def load(self) -> Dict[str, Any]:
        """
        Load configuration dictionary.

        A missing file falls back to defaults. A malformed file is an error:
        a session must not silently start against the wrong backend.
        """
        config: Dict[str, Any] = {}
        if self.config_path is not None:
            if self.config_path.exists():
                with open(self.config_path, 'r') as f:
                    config = json.load(f)
                logger.info(f"Session config loaded from {self.config_path}")
            else:
                logger.warning(f"Config file not found at {self.config_path}, using defaults")

        config = self._merge_with_defaults(config)
        self._apply_env_overrides(config)
        return config

    def resolve(self, launch_url: Optional[str] = None) -> SessionConfig:
        """
        Build the immutable SessionConfig.

        Args:
            launch_url: Launch URL / query string carrying participant identity.
                        Overrides the 'user' section when given.
        """
        config = dict(self.config)
        if launch_url:
            config['user'] = UserInfo.from_query(launch_url).to_dict()
        return SessionConfig.from_dict(config)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation (e.g., 'store.endpoint').
        """
        value = self.config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def save(self, path: Optional[str] = None):
        """
        Save current configuration to JSON.
        """
        target = Path(path) if path else self.config_path
        if target is None:
            raise ValueError("No config path to save to")
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w') as f:
            json.dump(self.config, f, indent=4)
        logger.info(f"Session config saved to {target}")

    def _merge_with_defaults(self, config: Dict[str, Any]) -> Dict[str, Any]:
        def merge_dict(base: dict, overlay: dict) -> dict:
            """Recursively merge overlay into base"""
            result = base.copy()
            for key, value in overlay.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = merge_dict(result[key], value)
                else:
                    result[key] = value
            return result

        return merge_dict(copy.deepcopy(self.DEFAULT_CONFIG), config)

    def _apply_env_overrides(self, config: Dict[str, Any]):
        for env_name, key_path in ENV_OVERRIDES.items():
            raw = self.environ.get(env_name)
            if raw is None:
                continue

            *parents, leaf = key_path.split('.')
            target = config
            for key in parents:
                target = target.setdefault(key, {})

            current = target.get(leaf)
            target[leaf] = raw.strip().lower() in TRUE_VALUES if isinstance(current, bool) else raw
            logger.debug(f"Config override from {env_name}: {key_path}")

    def __str__(self):
        return json.dumps(self.config, indent=2)
