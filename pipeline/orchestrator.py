"""
Library-level orchestrator: walks artists, then albums, and hands every
album to the AlbumRepairer.

Traversal is strictly sequential because any step may block on the
operator and renames must not race with listings of the same subtree.
Nothing raised while repairing one album reaches its siblings.
"""

import logging
import time
from pathlib import Path
from typing import Dict, Sequence

from models.schemas import AlbumRepairResult
from pipeline.album_repairer import AlbumRepairer
from pipeline.context import CleanerContext

logger = logging.getLogger(__name__)

ARTIST_INDENT = 0
ALBUM_INDENT = 1
SONG_INDENT = 2


class LibraryCleaner:
    """
    Depth-first library traversal honouring the artist/album selection.
    """

    def __init__(self, context: CleanerContext, repairer: AlbumRepairer = None):
        """Initialize the traversal with its run context."""
        self.context = context
        self.policy = context.policy
        self.terminal = context.terminal
        self.scanner = context.scanner
        self.launcher = context.launcher
        self.repairer = repairer or AlbumRepairer(context)

        # Statistics
        self.stats = {
            'artists_visited': 0,
            'albums_processed': 0,
            'albums_with_errors': 0,
            'albums_failed': 0,
            'albums_empty': 0,
            'albums_renamed': 0,
            'entries_skipped': 0,
            'actions': 0,
            'processing_time_total': 0.0
        }

    def clean_library(self, root_dir: Path) -> Dict[str, float]:
        """
        Clean an entire music library.

        Args:
            root_dir: Directory holding one sub-directory per artist

        Returns:
            Dictionary with processing statistics
        """
        logger.info(f"Starting library cleaning: {root_dir}")
        start_time = time.time()

        artists = self.scanner.list_artists(root_dir)
        if not artists:
            self.launcher.signal_path("No artists in directory", root_dir, ARTIST_INDENT)
            self.terminal.ask_to_continue(ARTIST_INDENT)
            return self.stats

        self._browse_artists(artists)

        self.stats['processing_time_total'] = time.time() - start_time
        logger.info(
            f"Library cleaning completed in {self.stats['processing_time_total']:.2f} seconds: "
            f"{self.stats['albums_processed']} albums processed, "
            f"{self.stats['albums_failed']} failed, {self.stats['albums_empty']} empty"
        )
        return self.stats

    def _browse_artists(self, artists: Sequence[Path]):
        selected_artist = self.policy.selected_artist
        selected_album = self.policy.selected_album

        for artist in artists:
            # An album selection searches every artist.
            if selected_artist is not None and selected_artist != artist.name and selected_album is None:
                continue

            if selected_album is None:
                self.terminal.info(f"{artist.name}:", ARTIST_INDENT)

            if not artist.is_dir():
                self._skip_entry(f"{artist.name} is not a directory", artist.parent, ARTIST_INDENT)
                continue

            albums = self.scanner.list_albums(artist)
            if not albums:
                self._skip_entry("No albums in directory", artist, ARTIST_INDENT)
                continue

            self.stats['artists_visited'] += 1
            self._browse_albums(albums)

    def _browse_albums(self, albums: Sequence[Path]):
        selected_album = self.policy.selected_album

        for album in albums:
            if selected_album is not None and selected_album != album.name:
                continue

            self.terminal.info(f"{album.name}:", ALBUM_INDENT)

            if not album.is_dir():
                self._skip_entry(f"{album.name} is not a directory", album.parent, ALBUM_INDENT)
                continue

            self.process_single_album(album)

    def _skip_entry(self, message: str, path: Path, indent: int):
        self.launcher.signal_path(message, path, indent)
        self.terminal.ask_to_continue(indent)
        self.stats['entries_skipped'] += 1

    def process_single_album(self, album_dir: Path) -> AlbumRepairResult:
        """
        Repair one album, containing any failure to this album.

        Args:
            album_dir: Album directory

        Returns:
            AlbumRepairResult with the outcome
        """
        logger.debug(f"Processing album: {album_dir}")

        try:
            result = self.repairer.repair(album_dir)
        except Exception as e:
            logger.exception(f"Failed to process album {album_dir}: {e}")
            self.terminal.error(f"Cannot process {album_dir.name}: {e}", ALBUM_INDENT)
            self.stats['albums_failed'] += 1
            return AlbumRepairResult(album_path=album_dir, errors=[str(e)])

        if result.empty:
            self.stats['albums_empty'] += 1
            return result

        self.stats['albums_processed'] += 1
        self.stats['actions'] += len(result.actions)
        if result.final_path is not None:
            self.stats['albums_renamed'] += 1
        if not result.success:
            self.stats['albums_with_errors'] += 1
            logger.warning(f"Album {album_dir.name} finished with errors: {'; '.join(result.errors)}")

        self.terminal.confirmation("[OK]", SONG_INDENT)
        return result
