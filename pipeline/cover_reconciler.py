"""
Cover artwork: migrate legacy cover files, make sure the album has a cover,
normalize JPEG covers to baseline and keep the picture embedded in every
song identical to the cover file.
"""

from pathlib import Path
import logging

from media.image_tool import is_jpeg
from models.schemas import AlbumRepairResult
from pipeline.context import CleanerContext
from pipeline.retry import retry_until_settled
from utils.exceptions import DiscoCleanerError

logger = logging.getLogger(__name__)

ALBUM_INDENT = 1
SONG_INDENT = 2


def same_image_format(path1: Path, path2: Path) -> bool:
    if is_jpeg(path1) and is_jpeg(path2):
        return True
    return path1.suffix.lower() == path2.suffix.lower()


class CoverReconciler:
    """Reconciles the cover file of an album with its songs' embedded pictures."""

    def __init__(self, context: CleanerContext):
        self.policy = context.policy
        self.terminal = context.terminal
        self.scanner = context.scanner
        self.filesystem_ops = context.filesystem_ops
        self.tag_codec = context.tag_codec
        self.image_tool = context.image_tool
        self.launcher = context.launcher

    def reconcile_cover(self, album_dir: Path, result: AlbumRepairResult):
        """Turn the first legacy cover file into the cover file if none exists yet."""
        cover_path = self.policy.cover_path(album_dir)
        if cover_path is None or cover_path.exists():
            return

        listing = self.scanner.list_songs(album_dir)
        for legacy in self.scanner.legacy_cover_files(listing):
            if cover_path.exists():
                break

            if same_image_format(legacy, cover_path):
                self._rename_legacy_cover(legacy, cover_path, result)
            else:
                self._convert_legacy_cover(legacy, cover_path, result)

    def _rename_legacy_cover(self, legacy: Path, cover_path: Path, result: AlbumRepairResult):
        prompt = f"Rename {legacy.name} to {cover_path.name}? (Y/n)"
        if not self.terminal.confirm(prompt, SONG_INDENT, self.policy.force):
            result.warnings.append(f"{legacy.name} not renamed")
            return

        try:
            self.filesystem_ops.rename(legacy, cover_path)
        except DiscoCleanerError as e:
            logger.error(str(e))
            self.terminal.error(f"Cannot rename to {cover_path.name}", SONG_INDENT)
            result.errors.append(str(e))
            return

        self.terminal.confirmation(f"{legacy.name} renamed", SONG_INDENT)
        result.actions.append(f"renamed {legacy.name} to {cover_path.name}")

    def _convert_legacy_cover(self, legacy: Path, cover_path: Path, result: AlbumRepairResult):
        try:
            self.image_tool.convert(legacy, cover_path)
        except DiscoCleanerError as e:
            logger.error(str(e))
            self.terminal.error(f"Cannot convert {legacy.name} to {cover_path.name}", SONG_INDENT)
            result.errors.append(str(e))
            return

        self.terminal.confirmation(f"{legacy.name} converted to {cover_path.name}", SONG_INDENT)
        result.actions.append(f"converted {legacy.name} to {cover_path.name}")

    def ensure_cover_exists(self, album_dir: Path, result: AlbumRepairResult) -> bool:
        """
        Ask the operator to provide a cover until one exists or they decline.

        Returns:
            True if the cover file exists
        """
        cover_path = self.policy.cover_path(album_dir)
        if cover_path is None:
            return False

        def attempt() -> bool:
            if cover_path.exists():
                return False
            self.launcher.signal_path("Cover does not exist", album_dir, SONG_INDENT)
            return self.terminal.ask_to_retry(SONG_INDENT)

        retry_until_settled(attempt, self.policy.max_retries, self.terminal, "cover lookup", SONG_INDENT)

        if not cover_path.exists():
            result.warnings.append(f"no {cover_path.name}")
            return False
        return True

    def ensure_cover_processed(self, album_dir: Path, result: AlbumRepairResult):
        """
        Normalize a JPEG cover to baseline and embed it in every song whose
        embedded picture differs from the file.
        """
        cover_path = self.policy.cover_path(album_dir)
        if (cover_path is None or not self.policy.process_cover_enabled
                or not cover_path.is_file() or not is_jpeg(cover_path)):
            return

        try:
            if not self.image_tool.is_baseline_jpeg(cover_path):
                self.image_tool.convert(cover_path, cover_path)
                self.terminal.confirmation(f"{cover_path.name} converted to baseline JPEG", SONG_INDENT)
                result.actions.append(f"converted {cover_path.name} to baseline")
            cover_bytes = self.filesystem_ops.read_bytes(cover_path)
        except DiscoCleanerError as e:
            logger.error(f"Cannot process cover {cover_path}: {e}")
            self.terminal.error("Cannot convert cover", ALBUM_INDENT)
            result.errors.append(str(e))
            return

        self.embed_cover(album_dir, cover_bytes, result)

    def embed_cover(self, album_dir: Path, cover_bytes: bytes, result: AlbumRepairResult) -> int:
        """
        Write cover_bytes into every song whose embedded picture differs.

        Returns:
            Number of songs rewritten
        """
        listing = self.scanner.list_songs(album_dir)
        updated = 0

        for song in self.scanner.audio_files(listing):
            try:
                if self.tag_codec.read(song).cover_bytes == cover_bytes:
                    continue
                self.tag_codec.write_embedded_cover(song, cover_bytes)
            except DiscoCleanerError as e:
                logger.error(f"Cannot embed cover into {song}: {e}")
                self.terminal.error(f"Cannot save cover to {song.name}", SONG_INDENT)
                result.errors.append(str(e))
                continue
            updated += 1

        if updated:
            self.terminal.confirmation("Cover saved to MP3", SONG_INDENT)
            result.actions.append(f"embedded cover into {updated} songs")
        return updated
