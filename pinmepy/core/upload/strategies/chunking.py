"""
Chunking strategies for file uploads.

The server chooses the chunk size when a session is opened; the client
only derives byte ranges from it. Chunk i covers
[i * chunk_size, min((i + 1) * chunk_size, file_size)).
"""
from abc import ABC, abstractmethod
from typing import List, Tuple


def expected_chunk_count(file_size: int, chunk_size: int) -> int:
    """Returns ceil(file_size / chunk_size)."""
    if chunk_size <= 0:
        raise ValueError("Chunk size must be positive")
    return -(-file_size // chunk_size)


class BaseChunkingStrategy(ABC):
    """Abstract base class for chunking strategies."""

    @abstractmethod
    def calculate_chunks(self, file_size: int) -> List[Tuple[int, int]]:
        """Calculate chunk boundaries."""
        pass


class FixedSizeChunkingStrategy(BaseChunkingStrategy):
    """
    Ranges for the geometry announced by the server.

    Every range is chunk_size bytes except the last, which holds the
    remainder, so the range count always equals expected_chunk_count().
    """

    DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1MB

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self.chunk_size = chunk_size

    def calculate_chunks(self, file_size: int) -> List[Tuple[int, int]]:
        """
        Args:
            file_size: Payload size in bytes

        Returns:
            (start, end) tuples ordered by chunk index
        """
        return [
            (start, min(start + self.chunk_size, file_size))
            for start in range(0, file_size, self.chunk_size)
        ]
