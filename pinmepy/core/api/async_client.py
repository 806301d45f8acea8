"""
Async Pinme API client.

Thin aiohttp transport that unwraps the {code, msg, data} envelope every
endpoint answers with.
"""
import json
import asyncio
from typing import Dict, Optional, Any
import aiohttp

from .config import APIConfig
from .errors import PinmeAPIError
from ..exceptions import PinmeRequestError, RequestTimeoutError
from ..logging import get_logger

SUCCESS_CODE = 200


def unwrap_envelope(payload: Any, require_data: bool = True) -> Any:
    """
    Extract the data member of a response envelope.

    Args:
        payload: Decoded JSON body
        require_data: Treat a missing/empty data member as failure

    Returns:
        The envelope's data member

    Raises:
        PinmeAPIError: If code is not 200 or data is missing
    """
    if not isinstance(payload, dict):
        raise PinmeAPIError(-1, f"Unexpected response: {payload!r}")

    code = payload.get('code')
    msg = payload.get('msg')
    data = payload.get('data')

    if code != SUCCESS_CODE:
        raise PinmeAPIError(code if isinstance(code, int) else -1, msg)
    if require_data and not data:
        raise PinmeAPIError(code, msg or "Response carried no data")
    return data


class AsyncAPIClient:
    """
    Asynchronous Pinme API client.

    Features:
    - Shared aiohttp session with connection pooling
    - Per-request timeouts
    - Envelope unwrapping and error translation

    Example:
        >>> async with AsyncAPIClient(APIConfig.from_env()) as client:
        ...     data = await client.post_json('chunk/init', {...})
    """

    def __init__(self, config: Optional[APIConfig] = None):
        """
        Initialize async API client.

        Args:
            config: API configuration (uses defaults if not provided)
        """
        self._config = config or APIConfig.default()
        self._session: Optional[aiohttp.ClientSession] = None
        self._closed = False
        self._logger = get_logger('pinmepy.api')

    @property
    def config(self) -> APIConfig:
        """Get current configuration."""
        return self._config

    async def __aenter__(self) -> 'AsyncAPIClient':
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session is created and open."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(**self._config.get_connector_kwargs())
            self._session = aiohttp.ClientSession(
                connector=connector,
                **self._config.get_session_kwargs()
            )
        return self._session

    async def close(self):
        """Close client and release resources."""
        self._closed = True
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def post_json(
        self,
        endpoint: str,
        body: Dict[str, Any],
        timeout: Optional[float] = None
    ) -> Any:
        """POST a JSON body and return the envelope's data."""
        return await self._request(
            'POST', endpoint, json=body, timeout=timeout
        )

    async def get_json(
        self,
        endpoint: str,
        params: Dict[str, Any],
        timeout: Optional[float] = None,
        require_data: bool = True
    ) -> Any:
        """GET with query parameters and return the envelope's data."""
        return await self._request(
            'GET', endpoint, params=params, timeout=timeout, require_data=require_data
        )

    async def post_form(
        self,
        endpoint: str,
        form: aiohttp.FormData,
        timeout: Optional[float] = None
    ) -> Any:
        """POST a multipart form and return the envelope's data."""
        return await self._request('POST', endpoint, data=form, timeout=timeout)

    async def _request(
        self,
        method: str,
        endpoint: str,
        timeout: Optional[float] = None,
        require_data: bool = True,
        **kwargs
    ) -> Any:
        if self._closed:
            raise PinmeRequestError("Client is closed")

        session = await self._ensure_session()
        url = self._config.url(endpoint)
        client_timeout = self._config.timeout.to_aiohttp_timeout(timeout)

        self._logger.debug(f"{method} {url}")
        try:
            async with session.request(
                method, url, timeout=client_timeout, **kwargs
            ) as response:
                text = await response.text()
                status = response.status
        except asyncio.TimeoutError:
            self._logger.warning(f"{method} {url} timed out")
            raise RequestTimeoutError(f"Request to {endpoint} timed out")
        except aiohttp.ClientError as e:
            self._logger.warning(f"Network error on {method} {url}: {e}")
            raise PinmeRequestError(f"Network error: {e}")

        self._logger.debug(f"Response {status}: {text[:300]}")
        try:
            payload = json.loads(text) if text else None
        except ValueError:
            raise PinmeAPIError(status, f"HTTP {status}: {text[:200]}")
        return unwrap_envelope(payload, require_data=require_data)
