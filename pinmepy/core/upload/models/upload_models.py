"""
Data models for upload module.

Uses dataclasses for type-safe data structures.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional, List, Union


class UploadPhase(Enum):
    """Phases of the upload pipeline."""
    INIT = 'init'
    PACKAGING = 'packaging'
    SESSION_INIT = 'session_init'
    UPLOADING = 'uploading'
    COMPLETING = 'completing'
    POLLING = 'polling'
    DONE = 'done'
    FAILED = 'failed'
    TIMED_OUT = 'timed_out'

    @property
    def is_terminal(self) -> bool:
        """Returns True for phases no transition leaves."""
        return self in (UploadPhase.DONE, UploadPhase.FAILED, UploadPhase.TIMED_OUT)

    def can_transition(self, target: 'UploadPhase') -> bool:
        """Returns True if moving from this phase to target is allowed."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: Dict[UploadPhase, frozenset] = {
    UploadPhase.INIT: frozenset({
        UploadPhase.PACKAGING, UploadPhase.SESSION_INIT,
        UploadPhase.UPLOADING, UploadPhase.FAILED,
    }),
    UploadPhase.PACKAGING: frozenset({UploadPhase.SESSION_INIT, UploadPhase.FAILED}),
    UploadPhase.SESSION_INIT: frozenset({UploadPhase.UPLOADING, UploadPhase.FAILED}),
    UploadPhase.UPLOADING: frozenset({UploadPhase.COMPLETING, UploadPhase.FAILED}),
    UploadPhase.COMPLETING: frozenset({UploadPhase.POLLING, UploadPhase.FAILED}),
    UploadPhase.POLLING: frozenset({
        UploadPhase.DONE, UploadPhase.FAILED, UploadPhase.TIMED_OUT,
    }),
    UploadPhase.DONE: frozenset(),
    UploadPhase.FAILED: frozenset(),
    UploadPhase.TIMED_OUT: frozenset(),
}


class ChunkStatus(Enum):
    """Transfer status of a single chunk."""
    PENDING = 'pending'
    IN_FLIGHT = 'in_flight'
    ACKED = 'acked'
    FAILED = 'failed'


@dataclass
class Chunk:
    """
    A fixed-size, index-numbered byte range of the payload.

    Attributes:
        index: 0-based chunk index, the only key the server needs for reassembly
        start: Start position in bytes
        end: End position in bytes (exclusive)
        attempt_count: Upload attempts made so far
        status: Current transfer status
    """
    index: int
    start: int
    end: int
    attempt_count: int = 0
    status: ChunkStatus = ChunkStatus.PENDING

    @property
    def size(self) -> int:
        """Returns chunk size."""
        return self.end - self.start


@dataclass(frozen=True)
class SessionInfo:
    """Chunk geometry returned by the init call."""
    session_id: str
    total_chunks: int
    chunk_size: int

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> 'SessionInfo':
        """Create from the init response data."""
        return cls(
            session_id=str(data['session_id']),
            total_chunks=int(data['total_chunks']),
            chunk_size=int(data['chunk_size'])
        )


@dataclass(frozen=True)
class StatusReport:
    """
    One answer of the status endpoint.

    Attributes:
        is_ready: Backend job finished
        content_hash: Content hash (only meaningful when ready)
        short_url: Optional short URL
        failed: Backend reported an explicit failure
        reason: Failure reason reported by the backend
    """
    is_ready: bool
    content_hash: Optional[str] = None
    short_url: Optional[str] = None
    failed: bool = False
    reason: Optional[str] = None

    @classmethod
    def from_response(cls, data: Optional[Dict[str, Any]]) -> 'StatusReport':
        """Create from the status response data; malformed payloads read as not ready."""
        if not isinstance(data, dict):
            data = {}
        result = data.get('upload_rst')
        if not isinstance(result, dict):
            result = {}
        failed = bool(data.get('is_failed')) or str(data.get('status', '')).lower() == 'failed'
        return cls(
            is_ready=bool(data.get('is_ready')),
            content_hash=result.get('Hash') or None,
            short_url=result.get('ShortUrl') or None,
            failed=failed,
            reason=data.get('error') or data.get('msg') if failed else None
        )

    @property
    def has_result(self) -> bool:
        """Returns True when ready with a non-empty hash."""
        return self.is_ready and bool(self.content_hash)


@dataclass(frozen=True)
class UploadResult:
    """
    Result of a successful upload.

    Attributes:
        content_hash: Content-addressed identifier of the stored bytes
        short_url: Optional short URL issued by the service
    """
    content_hash: str
    short_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {'contentHash': self.content_hash}
        if self.short_url:
            result['shortUrl'] = self.short_url
        return result


@dataclass(frozen=True)
class ProgressState:
    """Synthetic progress snapshot for UI feedback."""
    elapsed: float
    phase: UploadPhase
    fraction: float

    @property
    def percentage(self) -> float:
        """Returns progress as percentage."""
        return self.fraction * 100


@dataclass
class UploadConfig:
    """
    Configuration for one upload invocation.

    Attributes:
        path: File or directory to upload
        import_as_archive: Ask the service to import the payload as an archive
    """
    path: Path
    import_as_archive: bool = False

    def __post_init__(self):
        if isinstance(self.path, str):
            self.path = Path(self.path)


@dataclass
class UploadSession:
    """
    Server-side transfer context for one invocation.

    Created by SessionInitiator, mutated in place by ChunkUploader (chunk
    statuses) and SessionCompleter (phase). Never reused.
    """
    session_id: str
    total_chunks: int
    chunk_size: int
    source_digest: str
    source_size: int
    phase: UploadPhase = UploadPhase.INIT
    chunks: List[Chunk] = field(default_factory=list)
    trace_id: Optional[str] = None
    completion_requested: bool = False
    _result: Optional[UploadResult] = field(default=None, repr=False)

    @property
    def result(self) -> Optional[UploadResult]:
        """Result, set exactly once at the DONE transition."""
        return self._result

    @property
    def acked_chunks(self) -> int:
        """Number of acknowledged chunks."""
        return sum(1 for chunk in self.chunks if chunk.status is ChunkStatus.ACKED)

    @property
    def all_acked(self) -> bool:
        """Returns True if every chunk was acknowledged."""
        return len(self.chunks) == self.total_chunks and all(
            chunk.status is ChunkStatus.ACKED for chunk in self.chunks
        )

    def transition(self, target: UploadPhase) -> None:
        """
        Move the session to another phase.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if not self.phase.can_transition(target):
            raise RuntimeError(
                f"Invalid session transition {self.phase.value} -> {target.value}"
            )
        self.phase = target

    def mark_completion_requested(self) -> None:
        """
        Record the single completion call of this session.

        Raises:
            RuntimeError: If completion was already requested
        """
        if self.completion_requested:
            raise RuntimeError(f"Session {self.session_id} already completed")
        self.completion_requested = True

    def finish(self, result: UploadResult) -> None:
        """Store the result and move to DONE."""
        if self._result is not None:
            raise RuntimeError(f"Session {self.session_id} already has a result")
        self.transition(UploadPhase.DONE)
        self._result = result
