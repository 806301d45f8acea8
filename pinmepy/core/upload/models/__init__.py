"""Upload models."""
from .upload_models import (
    UploadPhase,
    ChunkStatus,
    Chunk,
    SessionInfo,
    StatusReport,
    UploadSession,
    UploadResult,
    UploadConfig,
    ProgressState,
)

__all__ = [
    'UploadPhase',
    'ChunkStatus',
    'Chunk',
    'SessionInfo',
    'StatusReport',
    'UploadSession',
    'UploadResult',
    'UploadConfig',
    'ProgressState',
]
