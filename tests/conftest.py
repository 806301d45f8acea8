"""Pytest fixtures for pinmepy tests."""
import asyncio
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

from pinmepy.core.api.config import APIConfig, RetryConfig, PollConfig, TimeoutConfig
from pinmepy.core.exceptions import PinmeException, PinmeRequestError
from pinmepy.core.upload.models import SessionInfo, StatusReport
from pinmepy.core.upload.strategies import expected_chunk_count


class FakeChunkAPI:
    """
    Scripted in-memory stand-in for the chunked upload service.

    Records every call and the bytes received per chunk index so tests can
    check reassembly, retry counts and the absence of calls.
    """

    def __init__(
        self,
        chunk_size: int = 1024,
        session_id: str = 'session-1',
        trace_id: str = 't1',
        statuses: Optional[List[Union[StatusReport, Exception]]] = None,
        failing_chunks: Optional[Dict[int, int]] = None,
        chunk_delays: Optional[Dict[int, float]] = None,
        upload_delay: float = 0.0
    ):
        """
        Args:
            chunk_size: Chunk size the server "chooses"
            session_id: Session id returned by init
            trace_id: Trace id returned by complete
            statuses: Status answers in order; the last one repeats
            failing_chunks: chunk index -> number of failures (-1 = always)
            chunk_delays: chunk index -> seconds before answering
            upload_delay: Default seconds before answering an upload
        """
        self.chunk_size = chunk_size
        self.session_id = session_id
        self.trace_id = trace_id
        self.statuses = list(statuses or [
            StatusReport(is_ready=True, content_hash='bafy123', short_url='abc')
        ])
        self.failing_chunks = dict(failing_chunks or {})
        self.chunk_delays = dict(chunk_delays or {})
        self.upload_delay = upload_delay
        self.total_chunks_override: Optional[int] = None
        self.init_error: Optional[PinmeException] = None
        self.complete_error: Optional[PinmeException] = None

        self.init_calls: List[dict] = []
        self.upload_calls: List[int] = []
        self.complete_calls: List[dict] = []
        self.status_calls: List[str] = []
        self.received: Dict[int, bytes] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    def attempts(self, chunk_index: int) -> int:
        return self.upload_calls.count(chunk_index)

    def assembled(self) -> bytes:
        """Payload as the server would reassemble it, by chunk index."""
        return b''.join(self.received[i] for i in sorted(self.received))

    async def init_session(self, file_name, file_size, digest, is_directory, uid):
        self.init_calls.append({
            'file_name': file_name,
            'file_size': file_size,
            'md5': digest,
            'is_directory': is_directory,
            'uid': uid,
        })
        if self.init_error is not None:
            raise self.init_error
        total = self.total_chunks_override
        if total is None:
            total = expected_chunk_count(file_size, self.chunk_size)
        return SessionInfo(self.session_id, total, self.chunk_size)

    async def upload_chunk(self, session_id, chunk_index, data, uid):
        self.upload_calls.append(chunk_index)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.chunk_delays.get(chunk_index, self.upload_delay)
            if delay:
                await asyncio.sleep(delay)
            remaining = self.failing_chunks.get(chunk_index, 0)
            if remaining:
                if remaining > 0:
                    self.failing_chunks[chunk_index] = remaining - 1
                raise PinmeRequestError(f"Network error: chunk {chunk_index} rejected")
            self.received[chunk_index] = bytes(data)
            return {'chunk_index': chunk_index, 'chunk_size': len(data)}
        finally:
            self.in_flight -= 1

    async def complete_session(self, session_id, uid, import_as_archive=False):
        self.complete_calls.append({
            'session_id': session_id,
            'uid': uid,
            'import_as_archive': import_as_archive,
        })
        if self.complete_error is not None:
            raise self.complete_error
        return self.trace_id

    async def get_status(self, trace_id, uid, timeout=None):
        self.status_calls.append(trace_id)
        index = min(len(self.status_calls), len(self.statuses)) - 1
        answer = self.statuses[index]
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeIdentity:
    """Identity provider with a fixed uid."""

    def __init__(self, uid: str = 'uid-1'):
        self.uid = uid

    def get_uid(self) -> str:
        return self.uid


class FakeClock:
    """Manually advanced monotonic clock with a matching async sleep."""

    def __init__(self, now: float = 0.0):
        self.now = now
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_api():
    """Fake service with 1 KiB chunks that answers ready immediately."""
    return FakeChunkAPI()


@pytest.fixture
def make_api():
    """Factory for scripted fake services."""
    return FakeChunkAPI


@pytest.fixture
def identity():
    """Identity provider returning 'uid-1'."""
    return FakeIdentity()


@pytest.fixture
def fake_clock():
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def config_dir(tmp_path):
    """Empty config directory."""
    path = tmp_path / 'config'
    path.mkdir()
    return path


@pytest.fixture
def fast_config(config_dir):
    """Client configuration with millisecond delays."""
    return APIConfig(
        base_url='https://api.test/v2',
        config_dir=config_dir,
        timeout=TimeoutConfig(total=5.0, connect=1.0, poll_request=1.0),
        retry=RetryConfig(max_retries=2, delay=0.01),
        poll=PollConfig(max_duration=2.0, interval=0.01, max_consecutive_errors=10),
    )


@pytest.fixture
def make_file(tmp_path):
    """Factory writing a file with deterministic content."""
    def _make(name: str = 'payload.bin', size: int = 4096) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(bytes(i % 251 for i in range(size)))
        return path
    return _make


@pytest.fixture
def site_dir(tmp_path):
    """Small directory tree to upload."""
    root = tmp_path / 'site'
    (root / 'assets').mkdir(parents=True)
    (root / 'index.html').write_text('<html>hello</html>')
    (root / 'assets' / 'app.js').write_bytes(os.urandom(3000))
    return root
