"""
API configuration module.

Provides configuration for the Pinme chunked upload client.
Every value has a default and can be overridden from the environment
through APIConfig.from_env().
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, Mapping
import os

import aiohttp

from ..exceptions import ConfigError

DEFAULT_API_URL = 'https://ipfs.glitterprotocol.dev/api/v2'
MB = 1024 * 1024


def _env_number(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative: {raw!r}")
    return value


@dataclass
class TimeoutConfig:
    """
    Timeout configuration.

    total bounds any single transfer call; poll_request bounds a single
    status request.
    """
    total: float = 600.0
    connect: float = 30.0
    poll_request: float = 10.0

    def to_aiohttp_timeout(self, total: Optional[float] = None):
        """Convert to aiohttp ClientTimeout."""
        return aiohttp.ClientTimeout(
            total=total if total is not None else self.total,
            connect=self.connect
        )


@dataclass
class RetryConfig:
    """
    Retry configuration for chunk uploads.

    A chunk is attempted at most max_retries + 1 times with a fixed delay
    between attempts.
    """
    max_retries: int = 2
    delay: float = 1.0


@dataclass
class PollConfig:
    """Status polling configuration."""
    max_duration: float = 300.0
    interval: float = 2.0
    max_consecutive_errors: int = 10


@dataclass
class LimitsConfig:
    """Upload size limits in bytes."""
    file_size_limit: int = 200 * MB
    directory_size_limit: int = 1000 * MB


@dataclass
class APIConfig:
    """
    Complete client configuration.

    Centralizes all configuration options for the chunked upload client.
    """
    base_url: str = DEFAULT_API_URL
    user_agent: str = 'pinmepy/1.0.0'
    max_concurrent_uploads: int = 6
    config_dir: Path = field(default_factory=lambda: Path.home() / '.pinme')

    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    extra_headers: Dict[str, str] = field(default_factory=dict)

    # Connection pool settings
    limit: int = 100
    limit_per_host: int = 20

    def __post_init__(self):
        if isinstance(self.config_dir, str):
            self.config_dir = Path(self.config_dir)
        self.base_url = self.base_url.rstrip('/')
        if self.max_concurrent_uploads < 1:
            raise ConfigError("max_concurrent_uploads must be at least 1")

    @classmethod
    def default(cls) -> 'APIConfig':
        """Create default configuration."""
        return cls()

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> 'APIConfig':
        """
        Create configuration from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)
            **overrides: Fields that take precedence over the environment

        Raises:
            ConfigError: If a numeric variable cannot be parsed
        """
        env = os.environ if env is None else env

        timeout = TimeoutConfig(
            total=_env_number(env, 'TIMEOUT_MS', 600_000) / 1000,
            poll_request=_env_number(env, 'POLL_TIMEOUT_SECONDS', 10),
        )
        retry = RetryConfig(
            max_retries=int(_env_number(env, 'MAX_RETRIES', 2)),
            delay=_env_number(env, 'RETRY_DELAY_MS', 1000) / 1000,
        )
        poll = PollConfig(
            max_duration=_env_number(env, 'MAX_POLL_TIME_MINUTES', 5) * 60,
            interval=_env_number(env, 'POLL_INTERVAL_SECONDS', 2),
        )
        limits = LimitsConfig(
            file_size_limit=int(_env_number(env, 'FILE_SIZE_LIMIT', 200) * MB),
            directory_size_limit=int(_env_number(env, 'DIRECTORY_SIZE_LIMIT', 1000) * MB),
        )

        kwargs: Dict[str, Any] = {
            'base_url': env.get('IPFS_API_URL') or DEFAULT_API_URL,
            'max_concurrent_uploads': int(_env_number(env, 'MAX_CONCURRENT_UPLOADS', 6)),
            'timeout': timeout,
            'retry': retry,
            'poll': poll,
            'limits': limits,
        }
        if env.get('PINME_CONFIG_DIR'):
            kwargs['config_dir'] = Path(env['PINME_CONFIG_DIR']).expanduser()
        kwargs.update(overrides)
        return cls(**kwargs)

    def url(self, endpoint: str) -> str:
        """Build the absolute URL of an API endpoint."""
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {
            'limit': self.limit,
            'limit_per_host': self.limit_per_host,
        }

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        headers = {
            'User-Agent': self.user_agent,
            **self.extra_headers
        }

        return {
            'headers': headers,
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
