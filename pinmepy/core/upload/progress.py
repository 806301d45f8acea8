"""
Synthetic upload progress.

Chunk acknowledgements say little about how long an upload takes: the
dominant cost is backend processing after the last chunk. Progress is
therefore estimated from elapsed time alone, on a curve that approaches
but never reaches its cap while work is ongoing.
"""
import math
import time
from typing import Callable, Optional

from .models import ProgressState, UploadPhase

BASE_TIME_CONSTANT = 8.0  # seconds
MIN_TIME_CONSTANT = 15.0  # seconds
TRANSFER_CAP = 0.90
PROCESSING_CEILING = 0.99
PROCESSING_WINDOW = 60.0  # seconds


def time_constant(item_count: int, total_size: int) -> float:
    """
    Time constant of the transfer curve in seconds.

    Grows with the log of the item count (30% weight) and of the size in
    MB (70% weight), never below MIN_TIME_CONSTANT.
    """
    count_factor = 0.3 * math.log1p(max(item_count, 0))
    size_factor = 0.7 * math.log1p(max(total_size, 0) / (1024 * 1024))
    return max(BASE_TIME_CONSTANT * (1 + count_factor + size_factor), MIN_TIME_CONSTANT)


def transfer_fraction(elapsed: float, tau: float, cap: float = TRANSFER_CAP) -> float:
    """Exponential approach 1 - exp(-t/tau), capped."""
    if elapsed <= 0:
        return 0.0
    return min(1.0 - math.exp(-elapsed / tau), cap)


def processing_fraction(
    elapsed: float,
    start: float = TRANSFER_CAP,
    ceiling: float = PROCESSING_CEILING,
    window: float = PROCESSING_WINDOW
) -> float:
    """Linear ramp from start to ceiling over window seconds."""
    if elapsed <= 0:
        return start
    return start + (ceiling - start) * min(elapsed / window, 1.0)


def format_duration(seconds: float) -> str:
    """Render seconds as '42s', '3m 5s' or '1h 2m 3s'."""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m {seconds % 60}s"


class ProgressEstimator:
    """
    Time-based progress estimate for one pipeline run.

    The fraction starts at 0, never decreases, stays below the transfer
    cap until polling starts, then ramps towards PROCESSING_CEILING and
    only reaches 1.0 on complete().

    Example:
        >>> estimator = ProgressEstimator(item_count=1, total_size=5 * 1024 * 1024)
        >>> estimator.snapshot().fraction
        0.0
    """

    def __init__(
        self,
        item_count: int = 1,
        total_size: int = 0,
        clock: Callable[[], float] = time.monotonic
    ):
        self._clock = clock
        self._tau = time_constant(item_count, total_size)
        self._start = clock()
        self._phase = UploadPhase.INIT
        self._polling_start: Optional[float] = None
        self._last = 0.0

    @property
    def phase(self) -> UploadPhase:
        return self._phase

    @property
    def tau(self) -> float:
        return self._tau

    def elapsed(self) -> float:
        """Seconds since the run started."""
        return self._clock() - self._start

    def set_phase(self, phase: UploadPhase) -> None:
        """Follow the pipeline into a new phase."""
        if phase is UploadPhase.POLLING and self._polling_start is None:
            self._polling_start = self._clock()
        self._phase = phase

    def complete(self) -> None:
        """Mark the run as successfully finished."""
        self._phase = UploadPhase.DONE

    def fraction(self) -> float:
        """Current progress fraction."""
        if self._phase is UploadPhase.DONE:
            value = 1.0
        elif self._polling_start is not None:
            value = processing_fraction(self._clock() - self._polling_start)
        else:
            value = transfer_fraction(self.elapsed(), self._tau)
        self._last = max(self._last, value)
        return self._last

    def snapshot(self) -> ProgressState:
        """Current progress as a ProgressState."""
        return ProgressState(
            elapsed=self.elapsed(),
            phase=self._phase,
            fraction=self.fraction()
        )
