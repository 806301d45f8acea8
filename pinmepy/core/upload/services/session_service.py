"""
Session services.

Opens a transfer session before any chunk is sent and finalizes it once
every chunk has been acknowledged.
"""
import time
from pathlib import Path
from typing import Optional

from ..models import UploadSession, UploadPhase, Chunk
from ..protocols import ChunkAPIProtocol, ChunkingStrategy
from ..strategies import FixedSizeChunkingStrategy, expected_chunk_count
from ...exceptions import SessionError, PinmeException
from ...logging import get_logger


class SessionInitiator:
    """
    Opens a transfer session with the remote service.

    Responsibilities:
    - Announce payload name, size, digest and kind
    - Validate the chunk geometry chosen by the server
    - Build the session's chunk table
    """

    def __init__(self, api: ChunkAPIProtocol):
        self._api = api
        self._logger = get_logger('pinmepy.upload.session')

    async def open(
        self,
        payload_path: Path,
        payload_size: int,
        digest: str,
        is_directory: bool,
        uid: str,
        name: Optional[str] = None
    ) -> UploadSession:
        """
        Open a session for a payload.

        Args:
            payload_path: Original file or packaged archive
            payload_size: Size of the payload in bytes
            digest: Hex MD5 digest of the payload
            is_directory: Payload is a packaged directory
            uid: Caller identity
            name: Name announced to the server (defaults to the payload's name)

        Returns:
            New UploadSession in the INIT phase

        Raises:
            SessionError: If the server rejects the session or the call fails
        """
        file_name = name or payload_path.name
        start = time.time()
        self._logger.info(f"Initializing session for {file_name} ({payload_size} bytes)")

        try:
            info = await self._api.init_session(
                file_name, payload_size, digest, is_directory, uid
            )
        except PinmeException as e:
            raise SessionError(f"Session initialization failed: {e}") from e

        if info.chunk_size <= 0:
            raise SessionError(f"Server returned invalid chunk size {info.chunk_size}")

        expected = expected_chunk_count(payload_size, info.chunk_size)
        if info.total_chunks != expected:
            raise SessionError(
                f"Server chunk geometry mismatch: {info.total_chunks} chunks of "
                f"{info.chunk_size} bytes for {payload_size} bytes (expected {expected})"
            )

        session = UploadSession(
            session_id=info.session_id,
            total_chunks=info.total_chunks,
            chunk_size=info.chunk_size,
            source_digest=digest,
            source_size=payload_size
        )
        session.chunks = self._build_chunks(payload_size, info.chunk_size)

        elapsed = time.time() - start
        self._logger.info(
            f"Session {session.session_id} opened in {elapsed:.2f}s: "
            f"{session.total_chunks} chunks of {session.chunk_size} bytes"
        )
        return session

    def _build_chunks(self, payload_size: int, chunk_size: int):
        strategy: ChunkingStrategy = FixedSizeChunkingStrategy(chunk_size)
        return [
            Chunk(index=index, start=start, end=end)
            for index, (start, end) in enumerate(strategy.calculate_chunks(payload_size))
        ]


class SessionCompleter:
    """Signals that all chunks are uploaded and requests finalization."""

    def __init__(self, api: ChunkAPIProtocol):
        self._api = api
        self._logger = get_logger('pinmepy.upload.session')

    async def complete(
        self,
        session: UploadSession,
        uid: str,
        import_as_archive: bool = False
    ) -> str:
        """
        Finalize a fully uploaded session.

        Called exactly once per session, only after every chunk is acked.

        Returns:
            Trace id of the asynchronous finalize-and-store job

        Raises:
            SessionError: If the server rejects completion
            RuntimeError: If chunks are missing or completion was already requested
        """
        if not session.all_acked:
            raise RuntimeError(
                f"Session {session.session_id} has {session.acked_chunks}/"
                f"{session.total_chunks} chunks acknowledged"
            )
        session.mark_completion_requested()
        session.transition(UploadPhase.COMPLETING)

        self._logger.info(f"Completing session {session.session_id}")
        try:
            trace_id = await self._api.complete_session(
                session.session_id, uid, import_as_archive
            )
        except PinmeException as e:
            raise SessionError(f"Complete upload failed: {e}") from e

        if not trace_id:
            raise SessionError("Complete upload failed: server returned no trace id")

        session.trace_id = trace_id
        self._logger.info(f"Session {session.session_id} finalizing as job {trace_id}")
        return trace_id
