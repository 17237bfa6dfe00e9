"""Pytest configuration and fixtures."""

import io
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest
from mutagen.apev2 import APEv2
from mutagen.id3 import APIC, ID3, Encoding, Frames, ID3v1SaveOptions, PictureType

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from media.image_tool import ImageTool
from models.schemas import RepairPolicy
from pipeline.context import CleanerContext
from utils.terminal import Terminal

# One MPEG-1 Layer III frame header followed by silence
FAKE_AUDIO = b"\xff\xfb\x90\x64" + b"\x00" * 413


def _id3v1_block(title="", artist="", album="", year=""):
    def field(value, size):
        return value.encode('latin-1')[:size].ljust(size, b"\x00")

    return (
        b"TAG" + field(title, 30) + field(artist, 30) + field(album, 30)
        + field(year, 4) + field(" ", 30) + b"\xff"
    )


def write_song(path: Path, frames=None, cover=None, v1=None, apev2=False) -> Path:
    """
    Create a fake MP3 with real tags.

    Args:
        path: File to create
        frames: Mapping of ID3v2 frame id to text
        cover: Bytes of an embedded front cover
        v1: Mapping with title/artist/album/year for an ID3v1 block
        apev2: Whether to append an APEv2 tag
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(FAKE_AUDIO)

    if frames or cover is not None:
        tags = ID3()
        for frame_id, text in (frames or {}).items():
            tags.add(Frames[frame_id](encoding=Encoding.UTF8, text=[text]))
        if cover is not None:
            tags.add(APIC(encoding=Encoding.UTF8, mime="image/jpeg", type=PictureType.COVER_FRONT,
                          desc='', data=cover))
        tags.save(str(path), v1=ID3v1SaveOptions.REMOVE)

    if v1 is not None:
        with open(path, 'ab') as f:
            f.write(_id3v1_block(**v1))

    if apev2:
        ape = APEv2()
        ape['Comment'] = "ripped by something"
        ape.save(str(path))

    return path


def build_context(answers: str = "", config=None, image_tool=None, **policy_fields) -> CleanerContext:
    """Context with a scripted terminal and a mocked ImageMagick wrapper."""
    policy = RepairPolicy(**policy_fields)
    terminal = Terminal(io.StringIO(answers), io.StringIO(), use_colors=False)
    return CleanerContext.build(config or {}, policy, terminal, image_tool=image_tool or Mock(spec=ImageTool))


@pytest.fixture
def song_factory():
    return write_song


@pytest.fixture
def context_factory():
    return build_context


@pytest.fixture
def album_dir(tmp_path):
    """Library root with one artist and one empty album directory."""
    album = tmp_path / "library" / "Beatles" / "abbey road"
    album.mkdir(parents=True)
    return album
