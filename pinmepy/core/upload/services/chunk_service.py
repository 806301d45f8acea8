"""
Chunk upload service.

Uploads every chunk of a session through a bounded pool of workers with
per-chunk retries and fail-fast cancellation.
"""
import asyncio
import time
from pathlib import Path
from typing import Callable, Optional

from ..models import Chunk, ChunkStatus, UploadPhase, UploadSession
from ..protocols import ChunkAPIProtocol, FileReaderProtocol
from .file_service import AsyncFileReader
from ...api.retry import RetryStrategy, FixedDelayStrategy
from ...cancellation import CancellationToken
from ...exceptions import CancellationError, ChunkError, PayloadError, PinmeException, UploadError
from ...logging import get_logger


class ChunkUploader:
    """
    Uploads all chunks of a session concurrently.

    Workers pull chunks from a shared queue, so at most
    max_concurrent_uploads requests are in flight. Chunk order does not
    matter: the server reassembles the payload by chunk index.

    Responsibilities:
    - Read chunk bytes from the payload
    - Retry failed chunks with a fixed delay
    - Cancel every worker once one chunk exhausts its retries
    """

    DEFAULT_CONCURRENCY = 6

    def __init__(
        self,
        api: ChunkAPIProtocol,
        file_reader: Optional[FileReaderProtocol] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        max_concurrent_uploads: int = DEFAULT_CONCURRENCY,
        on_chunk_acked: Optional[Callable[[Chunk], None]] = None
    ):
        """
        Initialize chunk uploader.

        Args:
            api: Remote chunked-upload service
            file_reader: Chunk reader (defaults to AsyncFileReader)
            retry_strategy: Retry policy (defaults to 2 retries, 1s apart)
            max_concurrent_uploads: Worker pool size
            on_chunk_acked: Optional callback invoked for each acknowledged chunk
        """
        if max_concurrent_uploads < 1:
            raise ValueError("max_concurrent_uploads must be at least 1")
        self._api = api
        self._file_reader = file_reader or AsyncFileReader()
        self._retry = retry_strategy or FixedDelayStrategy()
        self._max_concurrent = max_concurrent_uploads
        self._on_chunk_acked = on_chunk_acked
        self._first_error: Optional[ChunkError] = None
        self._logger = get_logger('pinmepy.upload.chunk')

    async def upload_all(
        self,
        session: UploadSession,
        payload_path: Path,
        uid: str,
        token: Optional[CancellationToken] = None
    ) -> None:
        """
        Upload every chunk of a session.

        Args:
            session: Session whose chunk table is uploaded
            payload_path: File the chunks are read from
            uid: Caller identity
            token: Shared cancellation signal (a fresh one if not given)

        Raises:
            ChunkError: First chunk that exhausted its retry budget
            PayloadError: If the payload cannot be opened
            UploadError: If the caller cancelled the upload
        """
        token = token or CancellationToken()
        self._first_error = None
        if session.phase is not UploadPhase.UPLOADING:
            session.transition(UploadPhase.UPLOADING)

        queue: asyncio.Queue = asyncio.Queue()
        for chunk in session.chunks:
            queue.put_nowait(chunk)

        workers = min(self._max_concurrent, len(session.chunks))
        total_mb = session.source_size / (1024 * 1024)
        self._logger.info(
            f"Uploading {session.total_chunks} chunks ({total_mb:.2f} MB total, "
            f"{workers} parallel workers)"
        )

        start = time.time()
        has_file_management = hasattr(self._file_reader, 'open_file') and hasattr(self._file_reader, 'close_file')
        try:
            if has_file_management:
                try:
                    await self._file_reader.open_file(payload_path)
                except OSError as e:
                    raise PayloadError(f"Cannot open {payload_path.name}: {e}") from e

            tasks = [
                asyncio.create_task(self._worker(queue, session, payload_path, uid, token))
                for _ in range(workers)
            ]
            try:
                await asyncio.gather(*tasks)
            except BaseException:
                token.cancel("uploader aborted")
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        finally:
            if has_file_management:
                await self._file_reader.close_file()

        if self._first_error is not None:
            self._logger.error(str(self._first_error))
            raise self._first_error

        if token.cancelled:
            raise UploadError(f"Upload cancelled: {token.reason}")

        elapsed = time.time() - start
        self._logger.info(
            f"All chunks uploaded successfully: {session.total_chunks} chunks, "
            f"{total_mb:.2f} MB in {elapsed:.2f}s"
        )

    async def _worker(
        self,
        queue: asyncio.Queue,
        session: UploadSession,
        payload_path: Path,
        uid: str,
        token: CancellationToken
    ) -> None:
        while not token.cancelled:
            try:
                chunk = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            try:
                await self._upload_chunk(chunk, session, payload_path, uid, token)
            except CancellationError:
                return
            except ChunkError as e:
                # Only the first failure reports; later ones are side effects
                if token.cancel(str(e)):
                    self._first_error = e
                return

    async def _upload_chunk(
        self,
        chunk: Chunk,
        session: UploadSession,
        payload_path: Path,
        uid: str,
        token: CancellationToken
    ) -> None:
        """Upload one chunk, retrying until acked or the budget is exhausted."""
        label = f"Chunk {chunk.index + 1}/{session.total_chunks}"

        token.raise_if_cancelled()
        data = await self._file_reader.read_chunk(payload_path, chunk.start, chunk.end)
        if data is None or len(data) != chunk.size:
            chunk.status = ChunkStatus.FAILED
            raise ChunkError(
                f"{label} upload failed: could not read bytes {chunk.start}-{chunk.end}",
                chunk.index, session.total_chunks
            )

        retry_count = 0
        while True:
            token.raise_if_cancelled()
            chunk.attempt_count += 1
            chunk.status = ChunkStatus.IN_FLIGHT
            attempt_start = time.time()
            try:
                await token.guard(
                    self._api.upload_chunk(session.session_id, chunk.index, data, uid)
                )
            except CancellationError:
                chunk.status = ChunkStatus.PENDING
                raise
            except PinmeException as e:
                chunk.status = ChunkStatus.PENDING
                if not self._retry.should_retry(e, retry_count):
                    chunk.status = ChunkStatus.FAILED
                    raise ChunkError(
                        f"{label} upload failed after {retry_count} retries: {e}",
                        chunk.index, session.total_chunks, error_code=e.error_code
                    ) from e
                retry_count += 1
                self._logger.warning(f"{label} failed ({e}), retry {retry_count}")
                await self._retry.wait(retry_count, token)
                continue

            chunk.status = ChunkStatus.ACKED
            elapsed = time.time() - attempt_start
            size_kb = chunk.size / 1024
            speed_kbps = (size_kb / elapsed) if elapsed > 0 else 0
            self._logger.debug(f"{label} acked in {elapsed:.2f}s ({speed_kbps:.1f} KB/s)")
            if self._on_chunk_acked and not token.cancelled:
                self._on_chunk_acked(chunk)
            return
