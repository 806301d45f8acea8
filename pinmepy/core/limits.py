"""
Upload size limits.

Oversized input is rejected before any network call is made.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .api.config import LimitsConfig
from .exceptions import ValidationError


def format_size(size: float) -> str:
    """Render a byte count as B, KB, MB or GB."""
    for unit in ('B', 'KB', 'MB'):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == 'B' else f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"


@dataclass(frozen=True)
class SizeCheck:
    """Outcome of a size-limit check."""
    size: int
    limit: int
    file_count: int
    is_directory: bool

    @property
    def exceeds(self) -> bool:
        return self.size > self.limit


def directory_stats(directory: Path):
    """
    Returns (total bytes, file count) of a directory tree.

    Symlinks to files are followed and counted at their target's size,
    matching what DirectoryPackager packs. Symlinked directories are not
    descended into.
    """
    total = 0
    count = 0
    for root, _, files in os.walk(directory):
        for name in files:
            path = Path(root) / name
            if path.is_file():
                total += path.stat().st_size
                count += 1
    return total, count


class SizeLimitChecker:
    """Applies the single-file and aggregate directory limits."""

    def __init__(self, limits: Optional[LimitsConfig] = None):
        self._limits = limits or LimitsConfig()

    def check(self, path: Path) -> SizeCheck:
        """Measure a path against its limit."""
        path = Path(path)
        if path.is_dir():
            size, count = directory_stats(path)
            return SizeCheck(size, self._limits.directory_size_limit, count, True)
        return SizeCheck(path.stat().st_size, self._limits.file_size_limit, 1, False)

    def ensure_within_limits(self, path: Path) -> SizeCheck:
        """
        Check a path and reject it if it is too large.

        Raises:
            ValidationError: If the size limit is exceeded
        """
        result = self.check(path)
        if result.exceeds:
            kind = 'Directory' if result.is_directory else 'File'
            raise ValidationError(
                f"{kind} {path} exceeds size limit {format_size(result.limit)} "
                f"(size: {format_size(result.size)})"
            )
        return result
