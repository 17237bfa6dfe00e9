"""
Pydantic schemas for the library cleaner.

These models define the repair policy derived from configuration, the
immutable tag snapshots read from song files, and per-album results.
"""

import re
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from utils.exceptions import ConfigurationError


def _split_list(value):
    """Accept either a YAML list or a comma separated string."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(',')
    items = [str(item).strip() for item in value if str(item).strip()]
    return items or None


class RepairPolicy(BaseModel):
    """What a valid library looks like, and how eagerly to fix it."""

    model_config = ConfigDict(frozen=True)

    song_pattern: Optional[str] = Field(default=None, description="Regex every audio filename must fully match")
    album_pattern: Optional[str] = Field(default=None, description="Regex every album directory name must fully match")
    album_mask: Optional[str] = Field(default=None, description="Album directory name template (%a, %b, %y)")
    tag_frames: Optional[List[str]] = Field(default=None, description="Allowed ID3v2 frame ids, in order")
    custom_tag_allowed: bool = Field(default=True, description="Whether a vendor (APEv2) tag may stay")
    cover_file_name: Optional[str] = Field(default=None, description="Exact name of the cover file")
    legacy_cover_file_names: Optional[List[str]] = Field(default=None, description="Obsolete cover names to migrate")
    process_cover_enabled: bool = Field(default=False, description="Normalize JPEG covers to baseline")
    force: bool = Field(default=False, description="Auto-confirm destructive actions")
    audio_extensions: List[str] = Field(default_factory=lambda: ['.mp3'])
    max_retries: int = Field(default=20, ge=1)
    selected_artist: Optional[str] = None
    selected_album: Optional[str] = None

    @field_validator('song_pattern', 'album_pattern', 'album_mask', 'cover_file_name', mode='before')
    @classmethod
    def empty_string_to_none(cls, v):
        if isinstance(v, str) and not v:
            return None
        return v

    @field_validator('song_pattern', 'album_pattern')
    @classmethod
    def pattern_compiles(cls, v):
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"invalid regular expression {v!r}: {e}")
        return v

    @field_validator('tag_frames', mode='before')
    @classmethod
    def parse_frames(cls, v):
        frames = _split_list(v)
        return [frame.upper() for frame in frames] if frames else None

    @field_validator('legacy_cover_file_names', mode='before')
    @classmethod
    def parse_legacy_names(cls, v):
        return _split_list(v)

    @field_validator('audio_extensions', mode='before')
    @classmethod
    def normalize_extensions(cls, v):
        extensions = _split_list(v) or []
        return [ext.lower() if ext.startswith('.') else f".{ext.lower()}" for ext in extensions]

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        artist: Optional[str] = None,
        album: Optional[str] = None
    ) -> "RepairPolicy":
        """Build the policy from a loaded configuration plus the CLI overlay."""
        naming = config.get('naming', {})
        tags = config.get('tags', {})
        cover = config.get('cover', {})
        behaviour = config.get('behaviour', {})
        library = config.get('library', {})

        try:
            return cls(
                song_pattern=naming.get('song_pattern'),
                album_pattern=naming.get('album_pattern'),
                album_mask=naming.get('album_mask'),
                tag_frames=tags.get('frames'),
                custom_tag_allowed=tags.get('custom_tag_allowed', True),
                cover_file_name=cover.get('file_name'),
                legacy_cover_file_names=cover.get('legacy_file_names'),
                process_cover_enabled=cover.get('process_enabled', False),
                force=behaviour.get('force', False),
                max_retries=behaviour.get('max_retries', 20),
                audio_extensions=library.get('audio_extensions', ['.mp3']),
                selected_artist=artist or None,
                selected_album=album or None,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid repair policy: {e}")

    def is_audio_file(self, path: Path) -> bool:
        return path.suffix.lower() in self.audio_extensions

    def is_cover_file(self, path: Path) -> bool:
        return self.cover_file_name is not None and path.name == self.cover_file_name

    def cover_path(self, album_dir: Path) -> Optional[Path]:
        if self.cover_file_name is None:
            return None
        return album_dir / self.cover_file_name


class TagSnapshot(BaseModel):
    """
    Immutable view of a song's tags at the time it was read.

    Writes never mutate a snapshot; the codec returns a new one instead.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Path
    has_legacy_tag: bool = Field(default=False, description="ID3v1 section present")
    has_modern_tag: bool = Field(default=False, description="ID3v2 section present")
    has_vendor_tag: bool = Field(default=False, description="APEv2 section present")
    frame_keys: FrozenSet[str] = Field(default_factory=frozenset, description="ID3v2 frame ids present")
    artist: Optional[str] = None
    album: Optional[str] = None
    year: Optional[str] = None
    cover_bytes: Optional[bytes] = Field(default=None, description="First embedded picture, if any")

    def missing_frames(self, allowed: List[str]) -> List[str]:
        """Allowed frames absent from the tag, in configuration order."""
        return [frame for frame in allowed if frame not in self.frame_keys]

    def extra_frames(self, allowed: List[str]) -> List[str]:
        """Frames present in the tag but not allowed, sorted."""
        return sorted(self.frame_keys - set(allowed))


class AlbumRepairResult(BaseModel):
    """Outcome of repairing one album directory."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    album_path: Path = Field(..., description="Album directory as found during traversal")
    final_path: Optional[Path] = Field(default=None, description="Album directory after a rename")
    empty: bool = Field(default=False, description="Album directory had no entries")
    actions: List[str] = Field(default_factory=list, description="Changes applied to disk")
    warnings: List[str] = Field(default_factory=list, description="Problems the operator chose to keep")
    errors: List[str] = Field(default_factory=list, description="Operations that failed")

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def current_path(self) -> Path:
        return self.final_path or self.album_path
