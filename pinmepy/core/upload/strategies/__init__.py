"""Upload strategies."""
from .chunking import BaseChunkingStrategy, FixedSizeChunkingStrategy, expected_chunk_count

__all__ = [
    'BaseChunkingStrategy',
    'FixedSizeChunkingStrategy',
    'expected_chunk_count',
]
