"""
File validation, reading and digest services.

Single Responsibility: Each class handles one specific task.
"""
import asyncio
from pathlib import Path
from typing import Tuple, Optional, Union
import aiofiles
from Crypto.Hash import MD5

from ...exceptions import ValidationError
from ...logging import get_logger

DIGEST_BLOCK_SIZE = 1024 * 1024


class FileValidator:
    """
    Validates a path before upload.

    Responsibilities:
    - Check path existence
    - Tell files from directories
    - Reject empty payloads
    """

    def validate(self, file_path: Union[str, Path]) -> Tuple[Path, bool]:
        """
        Validate a path for upload.

        Args:
            file_path: File or directory path

        Returns:
            Tuple of (resolved Path, is_directory)

        Raises:
            ValidationError: If the path doesn't exist or is neither file nor directory
        """
        path = Path(file_path).expanduser().resolve()

        if not path.exists():
            raise ValidationError(f"Path not found: {path}")

        if path.is_dir():
            return path, True

        if not path.is_file():
            raise ValidationError(f"Path is not a regular file or directory: {path}")

        return path, False

    def validate_size(self, file_size: int) -> None:
        """
        Validate payload size.

        Raises:
            ValidationError: If the payload is empty
        """
        if file_size == 0:
            raise ValidationError("Cannot upload empty file")


class AsyncFileReader:
    """
    Asynchronous file reader for chunk-based reading.

    Uses aiofiles for non-blocking I/O operations. Keeps one handle open
    during an upload; seek+read pairs are serialized so concurrent workers
    can share it.
    """

    def __init__(self):
        """Initialize file reader."""
        self._logger = get_logger('pinmepy.upload.file')
        self._file_handle = None
        self._current_file_path: Optional[Path] = None
        self._lock = asyncio.Lock()

    async def open_file(self, file_path: Path) -> None:
        """
        Open file for reading. Call this before reading chunks.

        Args:
            file_path: Path to the file to open
        """
        if self._file_handle is not None and self._current_file_path == file_path:
            return

        if self._file_handle is not None:
            await self.close_file()

        self._file_handle = await aiofiles.open(file_path, 'rb')
        self._current_file_path = file_path

    async def close_file(self) -> None:
        """Close the currently open file."""
        if self._file_handle is not None:
            await self._file_handle.close()
            self._file_handle = None
            self._current_file_path = None

    async def read_chunk(
        self,
        file_path: Path,
        start: int,
        end: int
    ) -> Optional[bytes]:
        """
        Read a chunk from a file.

        Reuses the open handle if there is one, otherwise opens and closes
        the file for this read.

        Args:
            file_path: Path to the file
            start: Start position in bytes
            end: End position in bytes

        Returns:
            Chunk data or None if reading failed
        """
        try:
            chunk_size = end - start

            if self._file_handle is not None and self._current_file_path == file_path:
                async with self._lock:
                    await self._file_handle.seek(start)
                    data = await self._file_handle.read(chunk_size)
            else:
                async with aiofiles.open(file_path, 'rb') as f:
                    await f.seek(start)
                    data = await f.read(chunk_size)

            if data:
                self._logger.debug(f"Read chunk: {start}-{end} ({len(data)} bytes)")
            return data if data else None
        except (IOError, OSError) as e:
            self._logger.error(f"Failed to read chunk {start}-{end}: {e}")
            return None


async def compute_digest(file_path: Path, block_size: int = DIGEST_BLOCK_SIZE) -> str:
    """
    Compute the hex MD5 digest the server uses to verify the payload.

    Args:
        file_path: Path to the payload
        block_size: Bytes read per step

    Returns:
        Lowercase hex digest
    """
    hasher = MD5.new()
    async with aiofiles.open(file_path, 'rb') as f:
        while True:
            block = await f.read(block_size)
            if not block:
                break
            hasher.update(block)
    return hasher.hexdigest()
