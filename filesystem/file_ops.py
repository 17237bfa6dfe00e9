"""
Filesystem operations for the library cleaner, using pathlib.

This module lists library directories, renames and deletes entries, and
persists rewritten song files through a temporary sibling so that an
original file is only replaced once the new content is complete.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Tuple
import logging

from utils.exceptions import FilesystemError

logger = logging.getLogger(__name__)

TEMP_SUFFIX = "_tmp"


@dataclass(frozen=True)
class AlbumListing:
    """
    Entries of an album directory, or the empty variant.

    An empty album is an expected condition: callers branch on is_empty
    instead of catching an exception.
    """

    album: Path
    entries: Tuple[Path, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def files(self) -> Iterator[Path]:
        return (entry for entry in self.entries if entry.is_file())

    def __iter__(self) -> Iterator[Path]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


class FileSystemOperations:
    """Handles all filesystem operations with proper error handling."""

    def list_directory(self, directory: Path) -> Tuple[Path, ...]:
        """
        List the entries of a directory, sorted by name.

        Returns:
            Tuple of entry paths; empty if the directory is missing or unreadable
        """
        try:
            return tuple(sorted(directory.iterdir(), key=lambda p: p.name))
        except FileNotFoundError:
            logger.debug(f"Directory does not exist: {directory}")
        except NotADirectoryError:
            logger.debug(f"Not a directory: {directory}")
        except PermissionError as e:
            logger.warning(f"Cannot access directory {directory}: {e}")
        except OSError as e:
            logger.warning(f"Cannot list directory {directory}: {e}")
        return ()

    def list_album(self, album_dir: Path) -> AlbumListing:
        return AlbumListing(album=album_dir, entries=self.list_directory(album_dir))

    def rename(self, source: Path, destination: Path) -> Path:
        """
        Rename a file or directory, refusing to overwrite anything.

        Returns:
            The destination path

        Raises:
            FilesystemError: If the rename fails or the destination exists
        """
        if not source.exists():
            raise FilesystemError(str(source), "rename", "Source does not exist")

        # A case-only rename on a case-insensitive filesystem sees itself as the destination.
        if destination.exists() and not self._same_entry(source, destination):
            raise FilesystemError(str(source), "rename", f"Destination already exists: {destination}")

        try:
            source.rename(destination)
        except PermissionError as e:
            raise FilesystemError(str(source), "rename", f"Permission denied: {e}")
        except OSError as e:
            raise FilesystemError(str(source), "rename", f"OS error: {e}")

        logger.info(f"Renamed: {source} -> {destination}")
        return destination

    def delete_file(self, path: Path):
        """
        Delete a single file.

        Raises:
            FilesystemError: If the path is not a file or cannot be removed
        """
        if not path.is_file():
            raise FilesystemError(str(path), "delete", "Not a regular file")
        try:
            path.unlink()
        except PermissionError as e:
            raise FilesystemError(str(path), "delete", f"Permission denied: {e}")
        except OSError as e:
            raise FilesystemError(str(path), "delete", f"OS error: {e}")

        logger.info(f"Deleted file: {path}")

    def read_bytes(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise FilesystemError(str(path), "read", str(e))

    def replace_via_temp(self, path: Path, write: Callable[[Path], None]):
        """
        Rewrite a file through a temporary sibling.

        The original is copied to <name>_tmp, write() modifies the copy, the
        original is deleted and the copy is moved into its place. If write()
        fails the original is left untouched and the copy is removed.

        Raises:
            FilesystemError: If copying, deleting or moving fails
        """
        temp_path = path.with_name(path.name + TEMP_SUFFIX)

        try:
            shutil.copy2(str(path), str(temp_path))
        except OSError as e:
            raise FilesystemError(str(path), "copy", f"Cannot create temporary file: {e}")

        try:
            write(temp_path)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

        try:
            path.unlink()
            shutil.move(str(temp_path), str(path))
        except OSError as e:
            raise FilesystemError(str(path), "replace", f"OS error: {e}")

        logger.debug(f"Replaced {path} through {temp_path.name}")

    @staticmethod
    def _same_entry(path1: Path, path2: Path) -> bool:
        try:
            return path1.samefile(path2)
        except OSError:
            return False
