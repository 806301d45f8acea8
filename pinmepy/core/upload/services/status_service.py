"""
Status polling service.

Waits for the asynchronous finalize-and-store job that follows chunk
completion.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional

from ..models import UploadResult
from ..protocols import ChunkAPIProtocol
from ...exceptions import (
    PinmeException,
    PollError,
    PollTimeout,
    RequestTimeoutError,
    ServerReportedFailure,
)
from ...logging import get_logger


class StatusPoller:
    """
    Polls the status endpoint until the content hash is available.

    Terminal outcomes:
    - ready: returns an UploadResult
    - the server reports failure: raises ServerReportedFailure
    - the deadline passes: raises PollTimeout

    Up to max_consecutive_errors transient request errors in a row are
    tolerated; one more raises PollError. A per-request timeout is never
    tolerated.
    """

    def __init__(
        self,
        api: ChunkAPIProtocol,
        max_duration: float = 300.0,
        interval: float = 2.0,
        max_consecutive_errors: int = 10,
        request_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize poller.

        Args:
            api: Remote chunked-upload service
            max_duration: Overall polling deadline in seconds
            interval: Sleep between requests in seconds
            max_consecutive_errors: Tolerated transient errors in a row
            request_timeout: Timeout for a single status request
            clock: Monotonic clock
            sleep: Coroutine used to wait between requests
        """
        self._api = api
        self._max_duration = max_duration
        self._interval = interval
        self._max_consecutive_errors = max_consecutive_errors
        self._request_timeout = request_timeout
        self._clock = clock
        self._sleep = sleep
        self._logger = get_logger('pinmepy.upload.status')

    async def poll(self, trace_id: str, uid: str) -> UploadResult:
        """
        Poll until the job is ready, failed or the deadline has passed.

        Raises:
            ServerReportedFailure: The server reported that the job failed
            PollTimeout: Not ready before the deadline
            PollError: Too many consecutive request errors, or a request timed out
        """
        start = self._clock()
        consecutive_errors = 0
        polls = 0

        while self._clock() - start < self._max_duration:
            polls += 1
            try:
                report = await self._api.get_status(
                    trace_id, uid, timeout=self._request_timeout
                )
            except RequestTimeoutError as e:
                raise PollError(f"Polling failed: {e}") from e
            except PinmeException as e:
                consecutive_errors += 1
                self._logger.warning(
                    f"Status request for {trace_id} failed "
                    f"({consecutive_errors}/{self._max_consecutive_errors}): {e}"
                )
                if consecutive_errors > self._max_consecutive_errors:
                    raise PollError(f"Polling failed: {e}") from e
            else:
                consecutive_errors = 0
                if report.failed:
                    reason = report.reason or 'unknown reason'
                    self._logger.error(f"Job {trace_id} failed: {reason}")
                    raise ServerReportedFailure(reason, trace_id)
                if report.has_result:
                    elapsed = self._clock() - start
                    self._logger.info(
                        f"Job {trace_id} ready after {polls} polls ({elapsed:.2f}s)"
                    )
                    return UploadResult(
                        content_hash=report.content_hash,
                        short_url=report.short_url
                    )
                self._logger.debug(f"Job {trace_id} not ready (poll {polls})")

            remaining = self._max_duration - (self._clock() - start)
            if remaining <= 0:
                break
            await self._sleep(min(self._interval, remaining))

        minutes = self._max_duration / 60
        raise PollTimeout(f"Polling timeout after {minutes:g} minutes")
