"""
Protocol definitions for upload module.

Defines interfaces (protocols) for dependency injection and strategy pattern.
"""
from typing import Protocol, Dict, Any, List, Optional, Tuple
from pathlib import Path

from .models import SessionInfo, StatusReport


class ChunkAPIProtocol(Protocol):
    """Protocol for the remote chunked-upload service."""

    async def init_session(
        self,
        file_name: str,
        file_size: int,
        digest: str,
        is_directory: bool,
        uid: str
    ) -> SessionInfo:
        """
        Open a transfer session.

        Returns:
            Session id and the chunk geometry chosen by the server
        """
        ...

    async def upload_chunk(
        self,
        session_id: str,
        chunk_index: int,
        data: bytes,
        uid: str
    ) -> Dict[str, Any]:
        """
        Upload a single chunk.

        Returns:
            Acknowledgement with chunk index and size
        """
        ...

    async def complete_session(
        self,
        session_id: str,
        uid: str,
        import_as_archive: bool = False
    ) -> str:
        """
        Signal that all chunks are uploaded.

        Returns:
            Trace id of the asynchronous finalize-and-store job
        """
        ...

    async def get_status(
        self,
        trace_id: str,
        uid: str,
        timeout: Optional[float] = None
    ) -> StatusReport:
        """Fetch the status of the finalize-and-store job."""
        ...


class ChunkingStrategy(Protocol):
    """Protocol for chunk geometry."""

    def calculate_chunks(self, file_size: int) -> List[Tuple[int, int]]:
        """
        Calculate chunk boundaries for a file.

        Args:
            file_size: Total file size in bytes

        Returns:
            List of (start, end) tuples representing chunk boundaries
        """
        ...


class FileReaderProtocol(Protocol):
    """Protocol for file reading operations."""

    async def read_chunk(
        self,
        file_path: Path,
        start: int,
        end: int
    ) -> Optional[bytes]:
        """
        Read a chunk from a file.

        Returns:
            Chunk data or None if reading failed
        """
        ...


class IdentityProviderProtocol(Protocol):
    """Supplies the stable uid sent on every call."""

    def get_uid(self) -> str:
        ...


class SizeLimitProtocol(Protocol):
    """Rejects oversized input before any network call."""

    def ensure_within_limits(self, path: Path) -> Any:
        ...


class HistoryRecorderProtocol(Protocol):
    """Receives a finalized upload record once a hash is obtained."""

    def record(self, record: Any) -> None:
        ...
