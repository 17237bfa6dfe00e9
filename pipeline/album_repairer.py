"""
Per-album repair steps.

Steps run in a fixed order and each one recovers from its own failures, so
a broken tag or a failed rename never stops the rest of the album:

    1. sub-directories inside the album are reported
    2. song filenames are checked against the song pattern
    3. tags are checked against the allowed frames
    4. the cover file is migrated, required and normalized
    5. files that are neither songs nor the cover are deleted
    6. the album directory is renamed from the album mask
"""

from pathlib import Path
from typing import Optional
import logging

from filesystem.file_ops import AlbumListing
from models.schemas import AlbumRepairResult
from pipeline.context import CleanerContext
from pipeline.cover_reconciler import CoverReconciler
from pipeline.path_policy import PathPolicy, is_valid_name
from pipeline.retry import retry_until_settled
from pipeline.tag_reconciler import TagReconciler
from utils.exceptions import DiscoCleanerError, TagReadWriteError

logger = logging.getLogger(__name__)

ALBUM_INDENT = 1
SONG_INDENT = 2


class AlbumRepairer:
    """Validates and fixes a single album directory."""

    def __init__(self, context: CleanerContext):
        self.context = context
        self.policy = context.policy
        self.terminal = context.terminal
        self.scanner = context.scanner
        self.filesystem_ops = context.filesystem_ops
        self.launcher = context.launcher

        self.path_policy = PathPolicy(context.scanner, context.tag_codec, context.terminal)
        self.tag_reconciler = TagReconciler(context)
        self.cover_reconciler = CoverReconciler(context)

    def repair(self, album_dir: Path) -> AlbumRepairResult:
        result = AlbumRepairResult(album_path=album_dir)

        if self._list_songs(album_dir) is None:
            result.empty = True
            return result

        self._run_step("entry check", self.check_entries_are_files, album_dir, result)

        if self.policy.song_pattern is not None:
            self._run_step("filename check", self.validate_song_filenames, album_dir, result)

        if self.policy.tag_frames:
            self._run_step("tag check", self.tag_reconciler.check_tags, album_dir, result)

        if self.policy.cover_file_name is not None:
            self._run_step("cover check", self.process_cover, album_dir, result)

        self._run_step("file cleanup", self.delete_invalid_files, album_dir, result)

        if self.policy.album_pattern is not None and self.policy.album_mask is not None:
            new_path = self._run_step("album rename", self.rename_album_directory, album_dir, result)
            if new_path is not None and new_path != album_dir:
                result.final_path = new_path

        return result

    def _run_step(self, name: str, step, album_dir: Path, result: AlbumRepairResult):
        try:
            return step(album_dir, result)
        except TagReadWriteError as e:
            logger.error(f"{name} failed for {album_dir}: {e}", exc_info=True)
            self.terminal.error("Cannot read MP3 tag", ALBUM_INDENT)
            result.errors.append(str(e))
        except DiscoCleanerError as e:
            logger.error(f"{name} failed for {album_dir}: {e}", exc_info=True)
            self.terminal.error(f"Cannot complete {name}: {e}", ALBUM_INDENT)
            result.errors.append(str(e))
        return None

    def _list_songs(self, album_dir: Path) -> Optional[AlbumListing]:
        """List the album, telling the operator when there is nothing in it."""
        listing = self.scanner.list_songs(album_dir)
        if listing.is_empty:
            self.launcher.signal_path("No songs in directory", album_dir, SONG_INDENT)
            self.terminal.ask_to_continue(SONG_INDENT)
            return None
        return listing

    def check_entries_are_files(self, album_dir: Path, result: AlbumRepairResult):
        listing = self._list_songs(album_dir)
        if listing is None:
            return

        for entry in self.scanner.subdirectories(listing):
            self.launcher.signal_path(f"{entry.name} is not a file", album_dir, SONG_INDENT)
            self.terminal.ask_to_continue(SONG_INDENT)
            result.warnings.append(f"{entry.name} is a directory")

    def validate_song_filenames(self, album_dir: Path, result: AlbumRepairResult):
        """Report audio files not matching the song pattern, rescanning on retry."""
        pattern = self.policy.song_pattern
        if pattern is None:
            return

        def attempt() -> bool:
            listing = self._list_songs(album_dir)
            if listing is None:
                return False

            for song in self.scanner.audio_files(listing):
                if is_valid_name(song.name, pattern):
                    continue
                self.launcher.signal_path(f"{song.name} is not a valid filename", album_dir, SONG_INDENT)
                if self.terminal.ask_to_retry(SONG_INDENT):
                    return True
                result.warnings.append(f"{song.name} is not a valid filename")
            return False

        retry_until_settled(attempt, self.policy.max_retries, self.terminal, "filename check", SONG_INDENT)

    def process_cover(self, album_dir: Path, result: AlbumRepairResult):
        if self.policy.legacy_cover_file_names:
            self.cover_reconciler.reconcile_cover(album_dir, result)

        if self.cover_reconciler.ensure_cover_exists(album_dir, result):
            self.cover_reconciler.ensure_cover_processed(album_dir, result)

    def delete_invalid_files(self, album_dir: Path, result: AlbumRepairResult):
        """Delete, after confirmation, every file that is neither a song nor the cover."""
        listing = self._list_songs(album_dir)
        if listing is None:
            return

        for entry in self.scanner.deletion_candidates(listing):
            if not self.terminal.confirm(f"Delete {entry.name}? (Y/n)", SONG_INDENT, self.policy.force):
                result.warnings.append(f"{entry.name} kept")
                continue

            try:
                self.filesystem_ops.delete_file(entry)
            except DiscoCleanerError as e:
                logger.error(str(e))
                self.terminal.error(f"Cannot delete {entry.name}", SONG_INDENT)
                result.errors.append(str(e))
                continue

            self.terminal.confirmation(f"{entry.name} deleted", SONG_INDENT)
            result.actions.append(f"deleted {entry.name}")

    def rename_album_directory(self, album_dir: Path, result: AlbumRepairResult) -> Path:
        """
        Rename the album directory from the album mask unless its name is
        already valid.

        Returns:
            The album directory path after the step

        Raises:
            TagReadWriteError: If the tag used for the mask cannot be read
        """
        if is_valid_name(album_dir.name, self.policy.album_pattern):
            return album_dir

        derived = {}

        def attempt() -> bool:
            listing = self._list_songs(album_dir)
            if listing is None:
                return False
            derived['name'] = self.path_policy.derive_album_name(listing, self.policy.album_mask, SONG_INDENT)
            if derived['name'] is not None:
                return False
            self.terminal.warning("Cannot build album directory name from mask", ALBUM_INDENT)
            return self.terminal.ask_to_retry(ALBUM_INDENT)

        retry_until_settled(attempt, self.policy.max_retries, self.terminal, "album name", ALBUM_INDENT)

        new_name = derived.get('name')
        if not new_name or not new_name.strip(' .') or new_name == album_dir.name:
            return album_dir

        prompt = f"Rename {album_dir.name} to {new_name}? (Y/n)"
        if not self.terminal.confirm(prompt, SONG_INDENT, self.policy.force):
            result.warnings.append(f"album not renamed to {new_name}")
            return album_dir

        try:
            new_path = self.filesystem_ops.rename(album_dir, album_dir.parent / new_name)
        except DiscoCleanerError as e:
            logger.error(str(e))
            self.terminal.error(f"Cannot rename to {new_name}", SONG_INDENT)
            result.errors.append(str(e))
            return album_dir

        self.terminal.confirmation(f"{album_dir.name} renamed", SONG_INDENT)
        result.actions.append(f"renamed album to {new_name}")
        return new_path
