"""
pinmepy - Async Python client for chunked uploads to Pinme/IPFS.

Usage:
    >>> from pinmepy import PinmeClient
    >>>
    >>> async with PinmeClient() as pinme:
    ...     result = await pinme.upload("dist/")
    ...     print(result.content_hash if result else pinme.last_error)
"""
from .client import PinmeClient

# Configuration
from .core.api import (
    APIConfig,
    TimeoutConfig,
    RetryConfig,
    PollConfig,
    LimitsConfig,
    AsyncAPIClient,
    ChunkAPI,
)

# Upload pipeline
from .core.upload import (
    UploadCoordinator,
    UploadFacade,
    UploadResult,
    UploadPhase,
    ProgressState,
    ProgressEstimator,
)
from .core.cancellation import CancellationToken
from .core.history import HistoryRecorder, UploadRecord

# Errors
from .core.exceptions import (
    PinmeException,
    ConfigError,
    ValidationError,
    IdentityError,
    PinmeRequestError,
    RequestTimeoutError,
    UploadError,
    PayloadError,
    SessionError,
    ChunkError,
    PollError,
    PollTimeout,
    ServerReportedFailure,
)

from .core.logging import setup_logging

__version__ = '1.0.0'


__all__ = [
    'PinmeClient',
    'APIConfig',
    'TimeoutConfig',
    'RetryConfig',
    'PollConfig',
    'LimitsConfig',
    'AsyncAPIClient',
    'ChunkAPI',
    'UploadCoordinator',
    'UploadFacade',
    'UploadResult',
    'UploadPhase',
    'ProgressState',
    'ProgressEstimator',
    'CancellationToken',
    'HistoryRecorder',
    'UploadRecord',
    'PinmeException',
    'ConfigError',
    'ValidationError',
    'IdentityError',
    'PinmeRequestError',
    'RequestTimeoutError',
    'UploadError',
    'PayloadError',
    'SessionError',
    'ChunkError',
    'PollError',
    'PollTimeout',
    'ServerReportedFailure',
    'setup_logging',
]
