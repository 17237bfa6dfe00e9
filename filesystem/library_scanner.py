"""
Scanning logic for an Artist/Album/Song music library.

This module enumerates the artist and album levels of the library and
classifies the entries of an album directory: songs, the cover file,
legacy cover files and files that have no place in an album.
"""

from pathlib import Path
from typing import Iterator, List, Optional, Tuple
import logging

from filesystem.file_ops import AlbumListing, FileSystemOperations
from models.schemas import RepairPolicy

logger = logging.getLogger(__name__)


class LibraryScanner:
    """Enumerates and classifies library entries according to a repair policy."""

    def __init__(self, filesystem_ops: FileSystemOperations, policy: RepairPolicy):
        self.filesystem_ops = filesystem_ops
        self.policy = policy

    def list_artists(self, root_dir: Path) -> Tuple[Path, ...]:
        artists = self.filesystem_ops.list_directory(root_dir)
        logger.info(f"Discovered {len(artists)} entries in library root {root_dir}")
        return artists

    def list_albums(self, artist_dir: Path) -> Tuple[Path, ...]:
        return self.filesystem_ops.list_directory(artist_dir)

    def list_songs(self, album_dir: Path) -> AlbumListing:
        return self.filesystem_ops.list_album(album_dir)

    def audio_files(self, listing: AlbumListing) -> Iterator[Path]:
        """Regular files with a configured audio extension."""
        return (entry for entry in listing.files() if self.policy.is_audio_file(entry))

    def first_audio_file(self, songs) -> Optional[Path]:
        for entry in songs:
            if entry.is_file() and self.policy.is_audio_file(entry):
                return entry
        return None

    def subdirectories(self, listing: AlbumListing) -> List[Path]:
        return [entry for entry in listing if entry.is_dir()]

    def deletion_candidates(self, listing: AlbumListing) -> List[Path]:
        """Regular files that are neither songs nor the designated cover file."""
        return [
            entry for entry in listing.files()
            if not self.policy.is_audio_file(entry) and not self.policy.is_cover_file(entry)
        ]

    def legacy_cover_files(self, listing: AlbumListing) -> List[Path]:
        """Files named after one of the configured legacy cover names."""
        legacy_names = self.policy.legacy_cover_file_names or []
        return [entry for entry in listing.files() if entry.name in legacy_names]
