"""
Per-song ID3 tag checks for an album.

Each song ends either Clean or Skipped. A song can also ask for the whole
album check to start over, when the operator chose to fix something by hand
and retry.
"""

from enum import Enum
from pathlib import Path
from typing import List
import logging

from filesystem.file_ops import AlbumListing
from models.schemas import AlbumRepairResult, TagSnapshot
from pipeline.context import CleanerContext
from pipeline.retry import retry_until_settled
from utils.exceptions import DiscoCleanerError

logger = logging.getLogger(__name__)

SONG_INDENT = 2

FRAME_DESCRIPTIONS = {
    "APIC": "Cover",
    "COMM": "Comment",
    "TALB": "Album",
    "TCON": "Genre",
    "TDRC": "Recording time",
    "TIT2": "Title",
    "TPE1": "Artist",
    "TPE2": "Album artist",
    "TPOS": "Disc number",
    "TRCK": "Track number",
    "TYER": "Year",
}


def describe_frame(frame_id: str) -> str:
    return FRAME_DESCRIPTIONS.get(frame_id, frame_id)


class TagOutcome(Enum):
    CLEAN = "clean"
    SKIPPED = "skipped"
    RETRY = "retry"


class TagReconciler:
    """Whitelists ID3v2 frames and removes disallowed tag sections."""

    def __init__(self, context: CleanerContext):
        self.policy = context.policy
        self.terminal = context.terminal
        self.scanner = context.scanner
        self.tag_codec = context.tag_codec

    @property
    def allowed_frames(self) -> List[str]:
        return self.policy.tag_frames or []

    def check_tags(self, album_dir: Path, result: AlbumRepairResult) -> bool:
        """
        Check the tags of every song in album_dir, restarting from the first
        song whenever the operator asks for a retry.

        Returns:
            False if the check gave up after the maximum number of retries
        """
        def attempt() -> bool:
            listing = self.scanner.list_songs(album_dir)
            if listing.is_empty:
                return False
            return self._check_album_once(listing, result) is TagOutcome.RETRY

        return retry_until_settled(attempt, self.policy.max_retries, self.terminal, "tag check", SONG_INDENT)

    def _check_album_once(self, listing: AlbumListing, result: AlbumRepairResult) -> TagOutcome:
        outcome = TagOutcome.CLEAN
        for song in listing:
            # Non-audio entries are skipped; the rest of the album is still checked.
            if not song.is_file() or not self.policy.is_audio_file(song):
                continue

            try:
                song_outcome = self.check_song(song, result)
            except DiscoCleanerError as e:
                logger.error(f"Tag check failed for {song}: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
                self.terminal.error(f"Cannot read MP3 tag of {song.name}", SONG_INDENT)
                result.errors.append(str(e))
                song_outcome = TagOutcome.SKIPPED

            if song_outcome is TagOutcome.RETRY:
                return TagOutcome.RETRY
            if song_outcome is TagOutcome.SKIPPED:
                outcome = TagOutcome.SKIPPED
        return outcome

    def check_song(self, song: Path, result: AlbumRepairResult) -> TagOutcome:
        """
        Run the tag state machine for one song.

        Raises:
            TagReadWriteError: If the tag cannot be read
        """
        snapshot = self.tag_codec.read(song)
        outcome = TagOutcome.CLEAN

        if snapshot.has_legacy_tag:
            self.terminal.warning(f"{song.name} has Id3v1 tag", SONG_INDENT)
            if self.terminal.ask_to_retry(SONG_INDENT):
                return TagOutcome.RETRY
            result.warnings.append(f"{song.name}: Id3v1 tag kept")
            outcome = TagOutcome.SKIPPED

        if snapshot.has_modern_tag:
            missing = snapshot.missing_frames(self.allowed_frames)
            if missing:
                self.terminal.warning(f"{song.name} has missing frames:", SONG_INDENT)
                for frame_id in missing:
                    self.terminal.warning(f"- {describe_frame(frame_id)}", SONG_INDENT + 1)
                if self.terminal.ask_to_retry(SONG_INDENT):
                    return TagOutcome.RETRY
                result.warnings.append(f"{song.name}: missing {', '.join(missing)}")
                outcome = TagOutcome.SKIPPED

            extra = snapshot.extra_frames(self.allowed_frames)
            if extra:
                snapshot, cleaned = self._clean_tag(snapshot, extra, result)
                if not cleaned:
                    outcome = TagOutcome.SKIPPED

        if not self.policy.custom_tag_allowed and snapshot.has_vendor_tag:
            if not self._delete_custom_tag(snapshot, result):
                outcome = TagOutcome.SKIPPED

        return outcome

    def _clean_tag(self, snapshot: TagSnapshot, extra: List[str], result: AlbumRepairResult):
        song = snapshot.path
        if not self.terminal.confirm(f"{song.name} has invalid tag. Clean? (Y/n)", SONG_INDENT, self.policy.force):
            result.warnings.append(f"{song.name}: extra frames {', '.join(extra)} kept")
            return snapshot, False

        try:
            fresh = self.tag_codec.remove_frames(song, extra)
        except DiscoCleanerError as e:
            logger.error(f"Cannot clean tag of {song}: {e}")
            self.terminal.error("Cannot clean tag", SONG_INDENT)
            result.errors.append(str(e))
            return snapshot, False

        self.terminal.confirmation("Tag cleaned", SONG_INDENT)
        result.actions.append(f"{song.name}: removed {', '.join(extra)}")
        return fresh, True

    def _delete_custom_tag(self, snapshot: TagSnapshot, result: AlbumRepairResult) -> bool:
        song = snapshot.path
        if not self.terminal.confirm("Delete custom tag? (Y/n)", SONG_INDENT, self.policy.force):
            result.warnings.append(f"{song.name}: custom tag kept")
            return False

        try:
            self.tag_codec.remove_vendor_tag(song)
        except DiscoCleanerError as e:
            logger.error(f"Cannot delete custom tag of {song}: {e}")
            self.terminal.error("Cannot delete custom tag", SONG_INDENT)
            result.errors.append(str(e))
            return False

        self.terminal.confirmation("Custom tag deleted", SONG_INDENT)
        result.actions.append(f"{song.name}: removed custom tag")
        return True
