"""Pinme API module."""
from .errors import PinmeAPIError, APIErrorCodes
from .config import APIConfig, TimeoutConfig, RetryConfig, PollConfig, LimitsConfig
from .retry import RetryStrategy, FixedDelayStrategy
from .async_client import AsyncAPIClient, unwrap_envelope
from .chunk_api import ChunkAPI

__all__ = [
    # Clients
    'AsyncAPIClient',
    'ChunkAPI',
    'unwrap_envelope',
    
    # Configuration
    'APIConfig',
    'TimeoutConfig',
    'RetryConfig',
    'PollConfig',
    'LimitsConfig',
    
    # Retry
    'RetryStrategy',
    'FixedDelayStrategy',
    
    # Errors
    'PinmeAPIError',
    'APIErrorCodes',
]
