"""
Naming rules: filename/dirname validity and album directory names built
from a mask and the tags of the album's first song.
"""

import re
from pathlib import Path
from typing import Iterable, Optional
import logging

from filesystem.library_scanner import LibraryScanner
from media.tag_codec import TagCodec
from utils.terminal import Terminal

logger = logging.getLogger(__name__)

ILLEGAL_NAME_CHARS = re.compile(r'[\\/:*?"<>|]')

# Placeholder, snapshot attribute, label used in warnings
MASK_PLACEHOLDERS = (
    ("%a", "artist", "Artist"),
    ("%b", "album", "Album"),
    ("%y", "year", "Year"),
)


def is_valid_name(name: str, pattern: str) -> bool:
    """True if the whole name matches pattern."""
    return re.fullmatch(pattern, name) is not None


def strip_illegal_chars(name: str) -> str:
    return ILLEGAL_NAME_CHARS.sub("", name)


class PathPolicy:
    """Derives album directory names from song tags."""

    def __init__(self, scanner: LibraryScanner, tag_codec: TagCodec, terminal: Terminal):
        self.scanner = scanner
        self.tag_codec = tag_codec
        self.terminal = terminal

    def derive_album_name(self, songs: Iterable[Path], mask: str, indent: int = 2) -> Optional[str]:
        """
        Fill mask with the artist (%a), album (%b) and year (%y) of the first
        audio file in songs.

        A value that is missing or empty leaves its placeholder in place and
        is reported as a warning. Characters that are illegal in file names
        are removed from the result.

        Returns:
            The album directory name, or None if songs holds no audio file

        Raises:
            TagReadWriteError: If the first audio file's tag cannot be read
        """
        song = self.scanner.first_audio_file(songs)
        if song is None:
            return None

        snapshot = self.tag_codec.read(song)

        name = mask
        for placeholder, attribute, label in MASK_PLACEHOLDERS:
            value = getattr(snapshot, attribute)
            if value:
                name = name.replace(placeholder, value)
            else:
                self.terminal.warning(f"{label} cannot be used in album directory mask (missing)", indent)

        name = strip_illegal_chars(name)
        logger.debug(f"Album name from mask {mask!r} and {song.name}: {name!r}")
        return name
