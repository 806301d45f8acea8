"""
Directory packaging service.

Compresses a directory into one temporary zip archive so it can be
transferred like a single file.
"""
import asyncio
import os
import tempfile
import time
import zipfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from ...exceptions import PayloadError, ValidationError
from ...logging import get_logger


class DirectoryPackager:
    """
    Packs a directory into a temporary zip archive.

    The archive is written to the system temp directory, never inside the
    source tree, so it cannot include itself.

    Example:
        >>> packager = DirectoryPackager()
        >>> async with packager.package(Path("site")) as archive:
        ...     await upload(archive)
        >>> # archive is removed here, whatever happened inside the block
    """

    ARCHIVE_PREFIX = 'pinme_'
    COMPRESS_LEVEL = 9

    def __init__(self, temp_dir: Optional[Path] = None):
        """
        Initialize packager.

        Args:
            temp_dir: Where archives are created (defaults to the system temp dir)
        """
        self._temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
        self._logger = get_logger('pinmepy.upload.packager')

    async def create_archive(self, directory: Path) -> Path:
        """
        Compress a directory into a new temporary archive.

        Args:
            directory: Directory to pack

        Returns:
            Path of the created archive; the caller owns and must remove it

        Raises:
            ValidationError: If directory is not a directory
            PayloadError: If an entry cannot be read or the archive cannot be written
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ValidationError(f"Not a directory: {directory}")

        try:
            self._temp_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(
                prefix=f"{self.ARCHIVE_PREFIX}{directory.name}_{int(time.time() * 1000)}_",
                suffix='.zip',
                dir=self._temp_dir
            )
        except OSError as e:
            raise PayloadError(f"Cannot create archive in {self._temp_dir}: {e}") from e
        os.close(fd)
        archive_path = Path(name)

        start = time.time()
        try:
            loop = asyncio.get_running_loop()
            entries = await loop.run_in_executor(
                None, self._write_archive, directory, archive_path
            )
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            self.remove(archive_path)
            raise PayloadError(f"Failed to package {directory.name}: {e}") from e
        except BaseException:
            self.remove(archive_path)
            raise

        elapsed = time.time() - start
        size_kb = archive_path.stat().st_size / 1024
        self._logger.info(
            f"Packed {directory.name} ({entries} entries) into {archive_path.name} "
            f"({size_kb:.1f} KB) in {elapsed:.2f}s"
        )
        return archive_path

    def _write_archive(self, directory: Path, archive_path: Path) -> int:
        entries = 0
        with zipfile.ZipFile(
            archive_path, 'w',
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.COMPRESS_LEVEL,
            strict_timestamps=False
        ) as archive:
            for root, dirs, files in os.walk(directory):
                dirs.sort()
                root_path = Path(root)
                for dirname in dirs:
                    dir_path = root_path / dirname
                    if dir_path.is_symlink():
                        continue
                    if not any(dir_path.iterdir()):
                        archive.write(dir_path, dir_path.relative_to(directory).as_posix() + '/')
                        entries += 1
                for filename in sorted(files):
                    file_path = root_path / filename
                    if not file_path.is_file():
                        # Same entries as directory_stats() counts
                        if file_path.is_symlink() and not file_path.exists():
                            raise FileNotFoundError(f"Dangling symlink: {file_path}")
                        continue
                    if file_path.resolve() == archive_path.resolve():
                        continue
                    archive.write(file_path, file_path.relative_to(directory).as_posix())
                    entries += 1
        return entries

    def remove(self, archive_path: Path) -> None:
        """Delete an archive; a missing file is not an error."""
        try:
            Path(archive_path).unlink()
            self._logger.debug(f"Removed temporary archive {archive_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            self._logger.warning(f"Could not remove temporary archive {archive_path}: {e}")

    @asynccontextmanager
    async def package(self, directory: Path) -> AsyncIterator[Path]:
        """
        Create an archive scoped to the with-block.

        The archive is removed on every exit path, success or failure.
        """
        archive_path = await self.create_archive(directory)
        try:
            yield archive_path
        finally:
            self.remove(archive_path)
