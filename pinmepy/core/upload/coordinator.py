"""
Upload coordinator.

Orchestrates the upload pipeline using injected dependencies:

    INIT -> PACKAGING (directories only) -> SESSION_INIT -> UPLOADING
         -> COMPLETING -> POLLING -> DONE | FAILED | TIMED_OUT
"""
import asyncio
import time
from pathlib import Path
from typing import Callable, Optional

from .models import UploadConfig, UploadPhase, UploadResult, UploadSession, ProgressState
from .progress import ProgressEstimator, format_duration
from .protocols import (
    ChunkAPIProtocol,
    IdentityProviderProtocol,
    SizeLimitProtocol,
    HistoryRecorderProtocol,
)
from .services import (
    FileValidator,
    AsyncFileReader,
    compute_digest,
    DirectoryPackager,
    SessionInitiator,
    SessionCompleter,
    ChunkUploader,
    StatusPoller,
)
from ..api.config import APIConfig
from ..api.retry import FixedDelayStrategy
from ..cancellation import CancellationToken
from ..exceptions import PayloadError, PollTimeout, ValidationError
from ..history import UploadRecord
from ..limits import SizeCheck, directory_stats
from ..logging import get_logger

logger = get_logger('pinmepy.upload.coordinator')

ProgressCallback = Callable[[ProgressState], None]


class UploadCoordinator:
    """
    Coordinates one upload invocation at a time.

    Uses dependency injection for all components, making it:
    - Testable (fake the remote service)
    - Extensible (swap packager, size checker, history)

    Every invocation opens a fresh session; sessions are never resumed.
    """

    PROGRESS_INTERVAL = 0.2  # seconds

    def __init__(
        self,
        api: ChunkAPIProtocol,
        identity: IdentityProviderProtocol,
        config: Optional[APIConfig] = None,
        size_checker: Optional[SizeLimitProtocol] = None,
        history: Optional[HistoryRecorderProtocol] = None,
        packager: Optional[DirectoryPackager] = None,
        progress_callback: Optional[ProgressCallback] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize upload coordinator.

        Args:
            api: Remote chunked-upload service
            identity: Supplies the uid sent on every call
            config: Client configuration
            size_checker: Rejects oversized input before any network call
            history: Receives a record once a hash has been obtained
            packager: Directory packager
            progress_callback: Default callback for progress updates
            clock: Monotonic clock for elapsed time and progress
        """
        self._api = api
        self._identity = identity
        self._config = config or APIConfig.default()
        self._size_checker = size_checker
        self._history = history
        self._packager = packager or DirectoryPackager()
        self._progress_callback = progress_callback
        self._clock = clock
        self._validator = FileValidator()
        self._initiator = SessionInitiator(api)
        self._completer = SessionCompleter(api)

        self._phase = UploadPhase.INIT
        self._session: Optional[UploadSession] = None
        self._estimator: Optional[ProgressEstimator] = None

    @property
    def phase(self) -> UploadPhase:
        """Pipeline phase of the current or last invocation."""
        return self._phase

    @property
    def session(self) -> Optional[UploadSession]:
        """Session of the current or last invocation."""
        return self._session

    async def upload(
        self,
        config: UploadConfig,
        token: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> UploadResult:
        """
        Execute the complete upload pipeline.

        Args:
            config: Upload configuration
            token: Cancellation signal the caller may raise to abort
            progress_callback: Overrides the default progress callback

        Returns:
            Upload result with the content hash

        Raises:
            ValidationError: Rejected before any network call
            PayloadError: The payload could not be packed or read
            SessionError, ChunkError, PollError, PollTimeout,
            ServerReportedFailure, UploadError: Pipeline failures
        """
        start = self._clock()
        self._phase = UploadPhase.INIT
        self._session = None
        self._estimator = None
        token = token or CancellationToken()
        callback = progress_callback or self._progress_callback

        try:
            path, is_directory = self._validator.validate(config.path)
            check = self._check_size(path, is_directory)
            if is_directory and check.file_count == 0:
                raise ValidationError(f"Directory {path} contains no files")
            if not is_directory:
                self._validator.validate_size(check.size)
            uid = self._identity.get_uid()
        except OSError as e:
            self._fail(UploadPhase.FAILED, start)
            raise ValidationError(f"Cannot read {config.path}: {e}") from e
        except BaseException:
            self._fail(UploadPhase.FAILED, start)
            raise

        kind = 'directory' if is_directory else 'file'
        logger.info(f"Starting upload of {kind} {path.name} ({check.size} bytes)")

        self._estimator = ProgressEstimator(
            item_count=check.file_count, total_size=check.size, clock=self._clock
        )
        ticker = None
        if callback:
            ticker = asyncio.create_task(self._tick_progress(callback))

        try:
            if is_directory:
                self._transition(UploadPhase.PACKAGING)
                async with self._packager.package(path) as archive:
                    result = await self._transfer(archive, uid, True, config, token)
            else:
                result = await self._transfer(path, uid, False, config, token)
        except PollTimeout:
            self._fail(UploadPhase.TIMED_OUT, start)
            raise
        except BaseException:
            self._fail(UploadPhase.FAILED, start)
            raise
        finally:
            if ticker:
                ticker.cancel()
                await asyncio.gather(ticker, return_exceptions=True)

        self._transition(UploadPhase.DONE)
        self._estimator.complete()
        if callback:
            callback(self._estimator.snapshot())

        elapsed = self._clock() - start
        logger.info(f"Upload of {path.name} completed in {format_duration(elapsed)}: {result.content_hash}")
        self._record_history(path, check, result)
        return result

    async def _transfer(
        self,
        payload: Path,
        uid: str,
        is_directory: bool,
        config: UploadConfig,
        token: CancellationToken
    ) -> UploadResult:
        """Session init, chunk upload, completion and polling for one payload."""
        self._transition(UploadPhase.SESSION_INIT)
        try:
            payload_size = payload.stat().st_size
            digest = await compute_digest(payload)
        except OSError as e:
            raise PayloadError(f"Cannot read {payload.name}: {e}") from e
        self._validator.validate_size(payload_size)

        session = await self._initiator.open(
            payload, payload_size, digest, is_directory, uid
        )
        self._session = session

        self._transition(UploadPhase.UPLOADING)
        uploader = ChunkUploader(
            self._api,
            file_reader=AsyncFileReader(),
            retry_strategy=FixedDelayStrategy(
                self._config.retry.max_retries, self._config.retry.delay
            ),
            max_concurrent_uploads=self._config.max_concurrent_uploads
        )
        await uploader.upload_all(session, payload, uid, token)

        self._transition(UploadPhase.COMPLETING)
        trace_id = await self._completer.complete(session, uid, config.import_as_archive)

        self._transition(UploadPhase.POLLING)
        session.transition(UploadPhase.POLLING)
        poller = StatusPoller(
            self._api,
            max_duration=self._config.poll.max_duration,
            interval=self._config.poll.interval,
            max_consecutive_errors=self._config.poll.max_consecutive_errors,
            request_timeout=self._config.timeout.poll_request
        )
        result = await poller.poll(trace_id, uid)
        session.finish(result)
        return result

    def _check_size(self, path: Path, is_directory: bool) -> SizeCheck:
        if self._size_checker is not None:
            return self._size_checker.ensure_within_limits(path)
        if is_directory:
            size, count = directory_stats(path)
            return SizeCheck(size, size, count, True)
        size = path.stat().st_size
        return SizeCheck(size, size, 1, False)

    def _transition(self, phase: UploadPhase) -> None:
        if not self._phase.can_transition(phase):
            raise RuntimeError(f"Invalid pipeline transition {self._phase.value} -> {phase.value}")
        logger.debug(f"Pipeline {self._phase.value} -> {phase.value}")
        self._phase = phase
        if self._estimator:
            self._estimator.set_phase(phase)

    def _fail(self, phase: UploadPhase, start: float) -> None:
        if not self._phase.is_terminal:
            self._phase = phase
        if self._estimator:
            self._estimator.set_phase(phase)
        session = self._session
        if session is not None and not session.phase.is_terminal:
            session.phase = phase
        elapsed = self._clock() - start
        logger.debug(f"Pipeline ended in {phase.value} after {format_duration(elapsed)}")

    async def _tick_progress(self, callback: ProgressCallback) -> None:
        while True:
            callback(self._estimator.snapshot())
            await asyncio.sleep(self.PROGRESS_INTERVAL)

    def _record_history(self, path: Path, check: SizeCheck, result: UploadResult) -> None:
        if self._history is None:
            return
        record = UploadRecord(
            path=str(path),
            name=path.name,
            content_hash=result.content_hash,
            size=check.size,
            file_count=check.file_count,
            is_directory=check.is_directory,
            short_url=result.short_url
        )
        try:
            self._history.record(record)
        except OSError as e:
            logger.warning(f"Could not save upload history: {e}")
