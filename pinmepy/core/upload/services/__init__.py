"""Upload services module."""
from .file_service import FileValidator, AsyncFileReader, compute_digest
from .packager import DirectoryPackager
from .session_service import SessionInitiator, SessionCompleter
from .chunk_service import ChunkUploader
from .status_service import StatusPoller

__all__ = [
    'FileValidator',
    'AsyncFileReader',
    'compute_digest',
    'DirectoryPackager',
    'SessionInitiator',
    'SessionCompleter',
    'ChunkUploader',
    'StatusPoller',
]
