"""
Upload module for chunked uploads.

Packages directories, opens a transfer session, uploads chunks through a
bounded worker pool, finalizes the session and polls the backend job
until the content hash is available.
"""
from .facade import UploadFacade
from .coordinator import UploadCoordinator
from .models import (
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
from .progress import ProgressEstimator
from .protocols import ChunkAPIProtocol, ChunkingStrategy, FileReaderProtocol
from .services import (
    DirectoryPackager,
    SessionInitiator,
    SessionCompleter,
    ChunkUploader,
    StatusPoller,
)

__all__ = [
    # Main classes
    'UploadFacade',
    'UploadCoordinator',
    
    # Pipeline components
    'DirectoryPackager',
    'SessionInitiator',
    'SessionCompleter',
    'ChunkUploader',
    'StatusPoller',
    'ProgressEstimator',
    
    # Models
    'UploadPhase',
    'ChunkStatus',
    'Chunk',
    'SessionInfo',
    'StatusReport',
    'UploadSession',
    'UploadResult',
    'UploadConfig',
    'ProgressState',
    
    # Protocols
    'ChunkAPIProtocol',
    'ChunkingStrategy',
    'FileReaderProtocol',
]
