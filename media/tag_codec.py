"""
MP3 tag access built on mutagen.

Reads return immutable TagSnapshot objects. Every write goes through a
temporary sibling file (see FileSystemOperations.replace_via_temp) and
returns a freshly read snapshot, so a caller never keeps using a tag view
that no longer matches the file on disk.

Sections handled:
    legacy: ID3v1, the 128 byte block at the end of the file
    modern: ID3v2, whose frames are whitelisted by the repair policy
    vendor: APEv2, an application-specific extra tag
"""

from pathlib import Path
from typing import Iterable, Optional
import logging

from mutagen import MutagenError
from mutagen.apev2 import APEv2, APENoHeaderError, delete as delete_apev2
from mutagen.id3 import APIC, ID3, ID3NoHeaderError, ID3v1SaveOptions, ParseID3v1, PictureType, Encoding

from filesystem.file_ops import FileSystemOperations
from models.schemas import TagSnapshot
from utils.exceptions import TagReadWriteError

logger = logging.getLogger(__name__)

ID3V1_SIZE = 128
ID3V1_MARKER = b"TAG"
COVER_MIME_TYPE = "image/jpeg"


class TagCodec:
    """Reads and rewrites the tags of MP3 files."""

    def __init__(self, filesystem_ops: FileSystemOperations):
        self.filesystem_ops = filesystem_ops

    def read(self, path: Path) -> TagSnapshot:
        """
        Read every tag section of a song.

        Raises:
            TagReadWriteError: If the file cannot be read or a tag is corrupt
        """
        legacy_block = self._read_id3v1_block(path)
        tags = self._load_id3(path)
        legacy_frames = self._parse_id3v1(legacy_block) if legacy_block else {}

        frame_keys = frozenset(frame.FrameID for frame in tags.values()) if tags is not None else frozenset()

        artist = self._frame_text(tags, 'TPE1') or self._frame_text(legacy_frames, 'TPE1')
        album = self._frame_text(tags, 'TALB') or self._frame_text(legacy_frames, 'TALB')
        year = self._year(tags) or self._year(legacy_frames)

        cover_bytes = None
        if tags is not None:
            pictures = tags.getall('APIC')
            if pictures:
                cover_bytes = pictures[0].data

        return TagSnapshot(
            path=path,
            has_legacy_tag=legacy_block is not None,
            has_modern_tag=tags is not None,
            has_vendor_tag=self._has_apev2(path),
            frame_keys=frame_keys,
            artist=artist,
            album=album,
            year=year,
            cover_bytes=cover_bytes,
        )

    def remove_frames(self, path: Path, keys: Iterable[str]) -> TagSnapshot:
        """Delete every ID3v2 frame whose id is in keys and persist the file."""
        keys = list(keys)

        def write(temp_path: Path):
            tags = self._load_id3(temp_path)
            if tags is None:
                return
            for key in keys:
                tags.delall(key)
            self._save_id3(tags, temp_path)

        self._rewrite(path, write, "clean")
        logger.info(f"Removed frames {', '.join(keys)} from {path}")
        return self.read(path)

    def remove_vendor_tag(self, path: Path) -> TagSnapshot:
        """Delete the APEv2 tag and persist the file."""

        def write(temp_path: Path):
            delete_apev2(str(temp_path))

        self._rewrite(path, write, "remove custom")
        logger.info(f"Removed APEv2 tag from {path}")
        return self.read(path)

    def write_embedded_cover(self, path: Path, data: bytes, mime: str = COVER_MIME_TYPE) -> TagSnapshot:
        """Replace all embedded pictures with a single front cover."""

        def write(temp_path: Path):
            tags = self._load_id3(temp_path)
            if tags is None:
                tags = ID3()
            tags.delall('APIC')
            tags.add(APIC(encoding=Encoding.UTF8, mime=mime, type=PictureType.COVER_FRONT, desc='', data=data))
            self._save_id3(tags, temp_path)

        self._rewrite(path, write, "write cover to")
        logger.info(f"Embedded {len(data)} byte cover into {path}")
        return self.read(path)

    def _rewrite(self, path: Path, write, operation: str):
        try:
            self.filesystem_ops.replace_via_temp(path, write)
        except (MutagenError, OSError) as e:
            raise TagReadWriteError(str(path), operation, str(e))

    def _load_id3(self, path: Path) -> Optional[ID3]:
        """ID3v2 frames exactly as stored: no v2.3 to v2.4 translation, no ID3v1 merge."""
        try:
            return ID3(str(path), translate=False, load_v1=False)
        except ID3NoHeaderError:
            return None
        except (MutagenError, OSError) as e:
            raise TagReadWriteError(str(path), "read", str(e))

    @staticmethod
    def _save_id3(tags: ID3, path: Path):
        v2_version = 3 if tags.version[1] == 3 else 4
        tags.save(str(path), v1=ID3v1SaveOptions.UPDATE, v2_version=v2_version)

    @staticmethod
    def _read_id3v1_block(path: Path) -> Optional[bytes]:
        try:
            with open(path, 'rb') as f:
                f.seek(0, 2)
                if f.tell() < ID3V1_SIZE:
                    return None
                f.seek(-ID3V1_SIZE, 2)
                block = f.read(ID3V1_SIZE)
        except OSError as e:
            raise TagReadWriteError(str(path), "read", str(e))
        return block if block.startswith(ID3V1_MARKER) else None

    @staticmethod
    def _parse_id3v1(block: bytes) -> dict:
        return ParseID3v1(block) or {}

    @staticmethod
    def _has_apev2(path: Path) -> bool:
        try:
            APEv2(str(path))
        except APENoHeaderError:
            return False
        except (MutagenError, OSError) as e:
            raise TagReadWriteError(str(path), "read custom", str(e))
        return True

    @staticmethod
    def _frame_text(frames, frame_id: str) -> Optional[str]:
        if not frames:
            return None
        frame = frames.get(frame_id)
        if frame is None or not getattr(frame, 'text', None):
            return None
        text = str(frame.text[0]).strip()
        return text or None

    @classmethod
    def _year(cls, frames) -> Optional[str]:
        year = cls._frame_text(frames, 'TYER') or cls._frame_text(frames, 'TDRC')
        return year[:4] if year else None
