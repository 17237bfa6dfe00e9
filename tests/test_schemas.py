"""Tests for the repair policy, tag snapshots and album results."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from models.schemas import AlbumRepairResult, RepairPolicy, TagSnapshot
from utils.exceptions import ConfigurationError


class TestRepairPolicy:

    def test_from_config_with_cli_overlay(self):
        config = {
            'naming': {'song_pattern': r'\d{2} .+\.mp3', 'album_pattern': None, 'album_mask': '%a - %b'},
            'tags': {'frames': 'tit2, tpe1,APIC', 'custom_tag_allowed': False},
            'cover': {'file_name': 'cover.jpg', 'legacy_file_names': ['folder.jpg'], 'process_enabled': True},
            'behaviour': {'force': True, 'max_retries': 5},
            'library': {'audio_extensions': ['MP3', '.Flac']},
        }

        policy = RepairPolicy.from_config(config, artist="Beatles", album="")

        assert policy.tag_frames == ['TIT2', 'TPE1', 'APIC']
        assert policy.custom_tag_allowed is False
        assert policy.legacy_cover_file_names == ['folder.jpg']
        assert policy.audio_extensions == ['.mp3', '.flac']
        assert policy.max_retries == 5
        assert policy.force is True
        assert policy.selected_artist == "Beatles"
        assert policy.selected_album is None

    def test_empty_strings_disable_features(self):
        policy = RepairPolicy(song_pattern="", album_mask="", cover_file_name="", tag_frames="")

        assert policy.song_pattern is None
        assert policy.album_mask is None
        assert policy.cover_file_name is None
        assert policy.tag_frames is None

    def test_invalid_pattern_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            RepairPolicy.from_config({'naming': {'album_pattern': '[a-'}})

    def test_policy_is_immutable(self):
        policy = RepairPolicy(force=False)
        with pytest.raises(ValidationError):
            policy.force = True

    def test_file_classification(self, tmp_path):
        policy = RepairPolicy(cover_file_name="cover.jpg")

        assert policy.is_audio_file(Path("01 Song.MP3"))
        assert not policy.is_audio_file(Path("cover.jpg"))
        assert policy.is_cover_file(Path("cover.jpg"))
        assert not policy.is_cover_file(Path("Cover.jpg"))
        assert policy.cover_path(tmp_path) == tmp_path / "cover.jpg"
        assert RepairPolicy().cover_path(tmp_path) is None


class TestTagSnapshot:

    def test_missing_frames_keep_configuration_order(self):
        snapshot = TagSnapshot(path=Path("a.mp3"), frame_keys=frozenset({"TPE1"}))

        assert snapshot.missing_frames(["TYER", "TPE1", "APIC"]) == ["TYER", "APIC"]

    def test_extra_frames(self):
        snapshot = TagSnapshot(path=Path("a.mp3"), frame_keys=frozenset({"TIT2", "TPE1", "TALB", "APIC"}))

        assert snapshot.extra_frames(["TIT2", "TPE1"]) == ["APIC", "TALB"]
        assert snapshot.extra_frames(["TIT2", "TPE1", "TALB", "APIC"]) == []


class TestAlbumRepairResult:

    def test_success_and_current_path(self, tmp_path):
        result = AlbumRepairResult(album_path=tmp_path / "old")

        assert result.success
        assert result.current_path == tmp_path / "old"

        result.final_path = tmp_path / "new"
        result.errors.append("boom")

        assert not result.success
        assert result.current_path == tmp_path / "new"
