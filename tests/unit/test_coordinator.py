"""Tests for UploadCoordinator and UploadFacade."""
import hashlib

import pytest

from pinmepy.core.api.config import LimitsConfig, PollConfig
from pinmepy.core.cancellation import CancellationToken
from pinmepy.core.exceptions import (
    ChunkError,
    PayloadError,
    PollTimeout,
    ServerReportedFailure,
    SessionError,
    UploadError,
    ValidationError,
)
from pinmepy.core.history import HistoryRecorder
from pinmepy.core.limits import SizeLimitChecker
from pinmepy.core.upload import UploadCoordinator, UploadFacade
from pinmepy.core.upload.models import StatusReport, UploadConfig, UploadPhase
from pinmepy.core.upload.services import DirectoryPackager

MB = 1024 * 1024
NOT_READY = StatusReport(is_ready=False)


class TestUploadCoordinator:
    """Test suite for UploadCoordinator."""

    @pytest.fixture
    def archive_dir(self, tmp_path):
        """Directory receiving temporary archives."""
        return tmp_path / "archives"

    @pytest.fixture
    def history(self, config_dir):
        return HistoryRecorder(config_dir)

    @pytest.fixture
    def make_coordinator(self, identity, fast_config, archive_dir, history):
        """Factory for coordinators around a fake service."""
        def _make(api, **kwargs):
            kwargs.setdefault('config', fast_config)
            kwargs.setdefault('packager', DirectoryPackager(temp_dir=archive_dir))
            kwargs.setdefault('history', history)
            return UploadCoordinator(api, identity, **kwargs)
        return _make

    @pytest.mark.asyncio
    async def test_file_upload(self, make_api, make_coordinator, make_file):
        """Test a 3-chunk file that becomes ready on the second poll."""
        api = make_api(
            chunk_size=MB,
            trace_id='t1',
            statuses=[NOT_READY, StatusReport(is_ready=True, content_hash='bafy123')]
        )
        path = make_file(size=2 * MB + 512 * 1024)
        coordinator = make_coordinator(api)

        result = await coordinator.upload(UploadConfig(path))

        assert result.content_hash == 'bafy123'
        assert coordinator.phase is UploadPhase.DONE
        assert coordinator.session.phase is UploadPhase.DONE
        assert coordinator.session.result == result
        assert coordinator.session.trace_id == 't1'

        init = api.init_calls[0]
        assert init['file_name'] == 'payload.bin'
        assert init['file_size'] == path.stat().st_size
        assert init['md5'] == hashlib.md5(path.read_bytes()).hexdigest()
        assert init['is_directory'] is False
        assert init['uid'] == 'uid-1'

        assert sorted(api.upload_calls) == [0, 1, 2]
        assert api.assembled() == path.read_bytes()
        assert len(api.complete_calls) == 1
        assert api.status_calls == ['t1', 't1']

    @pytest.mark.asyncio
    async def test_chunk_failure_aborts(self, make_api, make_coordinator, make_file):
        """Test a chunk that exhausts its retries fails the run without completion."""
        api = make_api(chunk_size=1024, failing_chunks={1: -1})
        path = make_file(size=3000)
        coordinator = make_coordinator(api)

        with pytest.raises(ChunkError) as exc_info:
            await coordinator.upload(UploadConfig(path))

        assert exc_info.value.chunk_index == 1
        assert exc_info.value.total_chunks == 3
        assert "Chunk 2/3" in str(exc_info.value)
        assert api.attempts(1) == 3
        assert api.complete_calls == []
        assert api.status_calls == []
        assert coordinator.phase is UploadPhase.FAILED
        assert coordinator.session.phase is UploadPhase.FAILED
        assert coordinator.session.result is None

    @pytest.mark.asyncio
    async def test_polling_timeout(self, make_api, make_coordinator, make_file, fast_config):
        """Test a job that never becomes ready ends in TIMED_OUT."""
        fast_config.poll = PollConfig(max_duration=0.05, interval=0.01)
        api = make_api(statuses=[NOT_READY])
        coordinator = make_coordinator(api)

        with pytest.raises(PollTimeout):
            await coordinator.upload(UploadConfig(make_file(size=2000)))

        assert coordinator.phase is UploadPhase.TIMED_OUT
        assert coordinator.session.phase is UploadPhase.TIMED_OUT
        assert coordinator.session.result is None
        assert len(api.complete_calls) == 1
        assert len(api.status_calls) >= 1

    @pytest.mark.asyncio
    async def test_server_failure(self, make_api, make_coordinator, make_file):
        """Test an explicit server failure ends in FAILED."""
        api = make_api(statuses=[StatusReport(is_ready=False, failed=True, reason='bad')])
        coordinator = make_coordinator(api)

        with pytest.raises(ServerReportedFailure):
            await coordinator.upload(UploadConfig(make_file(size=2000)))

        assert coordinator.phase is UploadPhase.FAILED

    @pytest.mark.asyncio
    async def test_session_rejected(self, make_api, make_coordinator, make_file):
        """Test a rejected session sends no chunks."""
        api = make_api()
        api.total_chunks_override = 99
        coordinator = make_coordinator(api)

        with pytest.raises(SessionError):
            await coordinator.upload(UploadConfig(make_file(size=2000)))

        assert api.upload_calls == []
        assert coordinator.phase is UploadPhase.FAILED

    @pytest.mark.asyncio
    async def test_directory_upload(self, make_api, make_coordinator, site_dir, archive_dir, history):
        """Test a directory is packaged, uploaded and the archive removed."""
        api = make_api(chunk_size=1024)
        coordinator = make_coordinator(api)

        result = await coordinator.upload(UploadConfig(site_dir))

        assert result.content_hash == 'bafy123'
        init = api.init_calls[0]
        assert init['is_directory'] is True
        assert init['file_name'].startswith('pinme_site_')
        assert init['file_name'].endswith('.zip')
        assert list(archive_dir.iterdir()) == []

        record = history.list()[0]
        assert record.is_directory is True
        assert record.file_count == 2
        assert record.name == 'site'

    @pytest.mark.asyncio
    async def test_directory_archive_removed_on_failure(
        self, make_api, make_coordinator, site_dir, archive_dir
    ):
        """Test the archive is removed when the upload fails."""
        api = make_api(chunk_size=1024, failing_chunks={0: -1})
        coordinator = make_coordinator(api)

        with pytest.raises(ChunkError):
            await coordinator.upload(UploadConfig(site_dir))

        assert list(archive_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_empty_directory_rejected(self, make_api, make_coordinator, tmp_path):
        """Test a directory without files is rejected before any call."""
        empty = tmp_path / "empty"
        empty.mkdir()
        api = make_api()

        with pytest.raises(ValidationError, match="contains no files"):
            await make_coordinator(api).upload(UploadConfig(empty))
        assert api.init_calls == []

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, make_api, make_coordinator, tmp_path):
        """Test an empty file is rejected before any call."""
        path = tmp_path / "empty.txt"
        path.write_bytes(b"")
        api = make_api()

        with pytest.raises(ValidationError, match="empty"):
            await make_coordinator(api).upload(UploadConfig(path))
        assert api.init_calls == []

    @pytest.mark.asyncio
    async def test_size_limit(self, make_api, make_coordinator, make_file):
        """Test oversized input is rejected before any call."""
        api = make_api()
        coordinator = make_coordinator(
            api, size_checker=SizeLimitChecker(LimitsConfig(file_size_limit=100))
        )

        with pytest.raises(ValidationError, match="exceeds size limit"):
            await coordinator.upload(UploadConfig(make_file(size=1000)))
        assert api.init_calls == []
        assert coordinator.phase is UploadPhase.FAILED
        assert coordinator.session is None

    @pytest.mark.asyncio
    async def test_missing_path(self, make_api, make_coordinator, tmp_path):
        """Test a missing path is rejected."""
        with pytest.raises(ValidationError):
            await make_coordinator(make_api()).upload(UploadConfig(tmp_path / "nope"))

    @pytest.mark.asyncio
    async def test_import_as_archive(self, make_api, make_coordinator, make_file):
        """Test the import flag reaches the completion call."""
        api = make_api()

        await make_coordinator(api).upload(
            UploadConfig(make_file(size=100), import_as_archive=True)
        )

        assert api.complete_calls[0]['import_as_archive'] is True

    @pytest.mark.asyncio
    async def test_history_recorded_on_success(self, make_api, make_coordinator, make_file, history):
        """Test a successful upload leaves one history record."""
        path = make_file(size=2000)

        await make_coordinator(make_api()).upload(UploadConfig(path))

        records = history.list()
        assert len(records) == 1
        assert records[0].content_hash == 'bafy123'
        assert records[0].short_url == 'abc'
        assert records[0].size == 2000
        assert records[0].file_count == 1

    @pytest.mark.asyncio
    async def test_no_history_on_failure(self, make_api, make_coordinator, make_file, history):
        """Test failed uploads are not recorded."""
        api = make_api(failing_chunks={0: -1})

        with pytest.raises(ChunkError):
            await make_coordinator(api).upload(UploadConfig(make_file(size=2000)))
        assert history.list() == []

    @pytest.mark.asyncio
    async def test_progress_callback(self, make_api, make_coordinator, make_file):
        """Test progress is monotonic and ends at 1.0."""
        api = make_api(upload_delay=0.01)
        states = []

        await make_coordinator(api).upload(
            UploadConfig(make_file(size=3000)), progress_callback=states.append
        )

        fractions = [s.fraction for s in states]
        assert fractions == sorted(fractions)
        assert states[-1].fraction == 1.0
        assert states[-1].phase is UploadPhase.DONE
        assert all(s.fraction < 1.0 for s in states[:-1])

    @pytest.mark.asyncio
    async def test_caller_cancellation(self, make_api, make_coordinator, make_file):
        """Test a cancelled token stops the run before completion."""
        api = make_api()
        token = CancellationToken()
        token.cancel("user abort")

        with pytest.raises(UploadError, match="cancelled"):
            await make_coordinator(api).upload(UploadConfig(make_file(size=3000)), token=token)
        assert api.upload_calls == []
        assert api.complete_calls == []

    @pytest.mark.asyncio
    async def test_fresh_session_per_run(self, make_api, make_coordinator, make_file):
        """Test every invocation opens its own session."""
        api = make_api()
        coordinator = make_coordinator(api)
        path = make_file(size=2000)

        await coordinator.upload(UploadConfig(path))
        first = coordinator.session
        await coordinator.upload(UploadConfig(path))

        assert len(api.init_calls) == 2
        assert coordinator.session is not first

    @pytest.mark.asyncio
    async def test_unreadable_payload(self, make_api, make_coordinator, make_file, monkeypatch):
        """Test a read error while hashing fails the run before session init."""
        async def denied(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("pinmepy.core.upload.coordinator.compute_digest", denied)
        api = make_api()
        coordinator = make_coordinator(api)

        with pytest.raises(PayloadError, match="Cannot read payload.bin") as exc_info:
            await coordinator.upload(UploadConfig(make_file(size=2000)))

        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert coordinator.phase is UploadPhase.FAILED
        assert api.init_calls == []

    @pytest.mark.asyncio
    async def test_dangling_symlink_in_directory(
        self, make_api, make_coordinator, site_dir, archive_dir, tmp_path
    ):
        """Test a directory entry that cannot be packed fails the run."""
        (site_dir / "broken").symlink_to(tmp_path / "missing.txt")
        api = make_api()
        coordinator = make_coordinator(api)

        with pytest.raises(PayloadError):
            await coordinator.upload(UploadConfig(site_dir))

        assert coordinator.phase is UploadPhase.FAILED
        assert coordinator.session is None
        assert api.init_calls == []
        assert list(archive_dir.iterdir()) == []


class TestUploadFacade:
    """Test suite for UploadFacade."""

    @pytest.fixture
    def make_facade(self, identity, fast_config):
        def _make(api):
            return UploadFacade(UploadCoordinator(api, identity, config=fast_config))
        return _make

    @pytest.mark.asyncio
    async def test_success(self, make_api, make_facade, make_file):
        """Test a successful upload returns the result."""
        facade = make_facade(make_api())

        result = await facade.upload(make_file(size=2000))

        assert result.content_hash == 'bafy123'
        assert facade.last_error is None
        assert facade.last_elapsed >= 0

    @pytest.mark.asyncio
    async def test_failure_returns_none(self, make_api, make_facade, make_file):
        """Test failures return None and keep the reason."""
        facade = make_facade(make_api(failing_chunks={0: -1}))

        result = await facade.upload(make_file(size=2000))

        assert result is None
        assert isinstance(facade.last_error, ChunkError)
        assert facade.coordinator.phase is UploadPhase.FAILED

    @pytest.mark.asyncio
    async def test_validation_failure_returns_none(self, make_api, make_facade, tmp_path):
        """Test validation errors are reported the same way."""
        facade = make_facade(make_api())

        assert await facade.upload(tmp_path / "missing") is None
        assert isinstance(facade.last_error, ValidationError)

    @pytest.mark.asyncio
    async def test_error_cleared_on_next_run(self, make_api, make_facade, make_file, tmp_path):
        """Test last_error only describes the latest run."""
        facade = make_facade(make_api())
        await facade.upload(tmp_path / "missing")

        await facade.upload(make_file(size=100))

        assert facade.last_error is None

    @pytest.mark.asyncio
    async def test_broken_symlink_returns_none(self, make_api, make_facade, site_dir, tmp_path):
        """Test a directory that cannot be packed returns None with the reason."""
        (site_dir / "broken").symlink_to(tmp_path / "missing.txt")
        api = make_api()
        facade = make_facade(api)

        result = await facade.upload(site_dir)

        assert result is None
        assert isinstance(facade.last_error, PayloadError)
        assert "Dangling symlink" in str(facade.last_error)
        assert facade.coordinator.phase is UploadPhase.FAILED
        assert api.init_calls == []
