"""
Upload history.

Stores finalized upload records as JSON in the config directory.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .logging import get_logger


@dataclass
class UploadRecord:
    """
    A finalized upload.

    Attributes:
        path: Local path that was uploaded
        name: File or directory name
        content_hash: Content hash returned by the service
        size: Payload size in bytes (before packaging)
        file_count: Number of files uploaded
        is_directory: A directory was uploaded
        short_url: Optional short URL
        uploaded_at: When the hash was obtained
    """
    path: str
    name: str
    content_hash: str
    size: int
    file_count: int
    is_directory: bool
    short_url: Optional[str] = None
    uploaded_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            'path': self.path,
            'name': self.name,
            'contentHash': self.content_hash,
            'size': self.size,
            'fileCount': self.file_count,
            'isDirectory': self.is_directory,
            'shortUrl': self.short_url,
            'uploadedAt': self.uploaded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'UploadRecord':
        uploaded_at = data.get('uploadedAt')
        return cls(
            path=data.get('path', ''),
            name=data.get('name', ''),
            content_hash=data['contentHash'],
            size=int(data.get('size', 0)),
            file_count=int(data.get('fileCount', 0)),
            is_directory=bool(data.get('isDirectory', False)),
            short_url=data.get('shortUrl'),
            uploaded_at=datetime.fromisoformat(uploaded_at) if uploaded_at else datetime.now()
        )


class HistoryRecorder:
    """
    JSON-file upload history, newest first.

    Example:
        >>> history = HistoryRecorder(Path.home() / '.pinme')
        >>> history.record(record)
        >>> history.list(limit=10)
    """

    FILE_NAME = 'upload_history.json'
    MAX_RECORDS = 100

    def __init__(self, config_dir: Path, max_records: int = MAX_RECORDS):
        self._path = Path(config_dir) / self.FILE_NAME
        self._max_records = max_records
        self._logger = get_logger('pinmepy.history')

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> List[dict]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            self._logger.warning(f"Ignoring unreadable history file {self._path}: {e}")
            return []
        return data if isinstance(data, list) else []

    def _save(self, entries: List[dict]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(entries, indent=2), encoding='utf-8')

    def record(self, record: UploadRecord) -> None:
        """Prepend a record, dropping the oldest beyond max_records."""
        entries = [record.to_dict()] + self._load()
        self._save(entries[:self._max_records])
        self._logger.debug(f"Recorded upload {record.content_hash} ({record.name})")

    def list(self, limit: Optional[int] = None) -> List[UploadRecord]:
        """Return up to limit records, newest first."""
        records = []
        for entry in self._load():
            try:
                records.append(UploadRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError):
                continue
        return records[:limit] if limit else records

    def clear(self) -> None:
        """Delete all records."""
        if self._path.exists():
            self._path.unlink()
