"""
Upload facade.

Provides a simplified interface for uploads.
Follows Facade Pattern - hides complexity of the upload subsystem.
"""
import time
from pathlib import Path
from typing import Optional, Union

from .coordinator import UploadCoordinator, ProgressCallback
from .models import UploadConfig, UploadResult
from .progress import format_duration
from ..cancellation import CancellationToken
from ..exceptions import PinmeException
from ..logging import get_logger


class UploadFacade:
    """
    All-or-nothing upload entry point.

    Expected failures never raise: upload() returns None and keeps the
    reason in last_error for the caller to present.

    Example:
        >>> facade = UploadFacade(coordinator)
        >>> result = await facade.upload("site/")
        >>> if result is None:
        ...     print(facade.last_error)
    """

    def __init__(self, coordinator: UploadCoordinator):
        self._coordinator = coordinator
        self._logger = get_logger('pinmepy.upload')
        self.last_error: Optional[PinmeException] = None
        self.last_elapsed: float = 0.0

    @property
    def coordinator(self) -> UploadCoordinator:
        return self._coordinator

    async def upload(
        self,
        path: Union[str, Path],
        import_as_archive: bool = False,
        token: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> Optional[UploadResult]:
        """
        Upload a file or directory.

        Args:
            path: File or directory to upload
            import_as_archive: Ask the service to import the payload as an archive
            token: Cancellation signal the caller may raise to abort
            progress_callback: Optional callback for progress updates

        Returns:
            UploadResult with the content hash, or None if the upload failed
        """
        config = UploadConfig(path=Path(path), import_as_archive=import_as_archive)
        self.last_error = None
        start = time.monotonic()
        try:
            return await self._coordinator.upload(
                config, token=token, progress_callback=progress_callback
            )
        except PinmeException as e:
            self.last_error = e
            return None
        finally:
            self.last_elapsed = time.monotonic() - start
            if self.last_error is not None:
                self._logger.error(
                    f"Upload failed: {self.last_error} ({format_duration(self.last_elapsed)})"
                )
