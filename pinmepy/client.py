"""
Pinme client.

High-level entry point that wires configuration, identity, size limits,
upload history and the chunked upload pipeline together.

Usage:
    >>> async with PinmeClient() as pinme:
    ...     result = await pinme.upload("dist/")
    ...     if result:
    ...         print(result.content_hash)
"""
from pathlib import Path
from typing import List, Optional, Union

from .core.api import APIConfig, AsyncAPIClient, ChunkAPI
from .core.cancellation import CancellationToken
from .core.exceptions import PinmeException
from .core.history import HistoryRecorder, UploadRecord
from .core.identity import IdentityProvider, AuthConfig
from .core.limits import SizeLimitChecker
from .core.upload import UploadCoordinator, UploadFacade, UploadResult
from .core.upload.coordinator import ProgressCallback


class PinmeClient:
    """
    Async client for uploading files and directories.

    Example:
        >>> async with PinmeClient(APIConfig.from_env()) as pinme:
        ...     result = await pinme.upload("photo.jpg")
    """

    def __init__(self, config: Optional[APIConfig] = None):
        """
        Initialize client.

        Args:
            config: Client configuration (defaults to APIConfig.from_env())
        """
        self._config = config or APIConfig.from_env()
        self._http = AsyncAPIClient(self._config)
        self._api = ChunkAPI(self._http)
        self._identity = IdentityProvider(self._config.config_dir)
        self._history = HistoryRecorder(self._config.config_dir)
        self._coordinator = UploadCoordinator(
            api=self._api,
            identity=self._identity,
            config=self._config,
            size_checker=SizeLimitChecker(self._config.limits),
            history=self._history
        )
        self._uploader = UploadFacade(self._coordinator)

    @property
    def config(self) -> APIConfig:
        return self._config

    @property
    def last_error(self) -> Optional[PinmeException]:
        """Reason of the last failed upload."""
        return self._uploader.last_error

    @property
    def last_elapsed(self) -> float:
        """Duration of the last upload in seconds."""
        return self._uploader.last_elapsed

    async def __aenter__(self) -> 'PinmeClient':
        await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP session."""
        await self._http.close()

    async def upload(
        self,
        path: Union[str, Path],
        import_as_archive: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None
    ) -> Optional[UploadResult]:
        """
        Upload a file or directory.

        Args:
            path: File or directory to upload
            import_as_archive: Ask the service to import the payload as an archive
            progress_callback: Optional callback for progress updates
            token: Cancellation signal the caller may raise to abort

        Returns:
            UploadResult, or None if the upload failed (see last_error)
        """
        return await self._uploader.upload(
            path,
            import_as_archive=import_as_archive,
            token=token,
            progress_callback=progress_callback
        )

    def history(self, limit: Optional[int] = None) -> List[UploadRecord]:
        """Recent uploads, newest first."""
        return self._history.list(limit)

    def clear_history(self) -> None:
        """Delete all upload records."""
        self._history.clear()

    def set_app_key(self, app_key: str) -> AuthConfig:
        """Store an app key of the form "<address>-<jwt>"."""
        return self._identity.auth.set(app_key)

    def get_app_key(self) -> Optional[AuthConfig]:
        """Return the stored app key, if any."""
        return self._identity.auth.get()

    def logout(self) -> bool:
        """Forget the stored app key; returns True if one existed."""
        return self._identity.auth.clear()
