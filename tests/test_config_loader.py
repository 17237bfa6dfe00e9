"""
Tests for configuration loading: defaults, YAML merge, environment
overrides, validation and the generated template.
"""

import os

import pytest
import yaml

from utils.config_loader import (
    ENV_PREFIX,
    _convert_env_value,
    _merge_configs,
    ensure_config_file,
    get_config_template,
    load_config,
)
from utils.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep overrides from the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


class TestLoadConfig:

    def test_defaults_without_file(self):
        config = load_config(None)

        assert config['library']['path'] == "~/Music"
        assert config['library']['audio_extensions'] == ['.mp3']
        assert config['behaviour'] == {'force': False, 'max_retries': 20}
        assert config['naming']['album_mask'] is None
        assert config['logging']['run_log_file'] == "discocleaner.log"

    def test_file_values_merge_over_defaults(self, tmp_path):
        config_file = tmp_path / "discocleaner.yaml"
        config_file.write_text(yaml.safe_dump({
            'library': {'path': '/srv/music'},
            'naming': {'album_mask': '%a - %b (%y)'},
            'tags': {'frames': ['TIT2', 'TPE1']},
        }))

        config = load_config(config_file)

        assert config['library']['path'] == '/srv/music'
        assert config['library']['audio_extensions'] == ['.mp3']
        assert config['naming']['album_mask'] == '%a - %b (%y)'
        assert config['tags']['frames'] == ['TIT2', 'TPE1']
        assert config['tags']['custom_tag_allowed'] is True

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        assert config['library']['path'] == "~/Music"

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("library: [unclosed")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(config_file)

    def test_non_mapping_file(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(config_file)

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISCOCLEANER_BEHAVIOUR__FORCE", "true")
        monkeypatch.setenv("DISCOCLEANER_BEHAVIOUR__MAX_RETRIES", "3")
        monkeypatch.setenv("DISCOCLEANER_LIBRARY__PATH", "/mnt/music")

        config = load_config(None)

        assert config['behaviour']['force'] is True
        assert config['behaviour']['max_retries'] == 3
        assert config['library']['path'] == "/mnt/music"

    def test_invalid_pattern_rejected(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text(yaml.safe_dump({'naming': {'song_pattern': '(unclosed'}}))

        with pytest.raises(ConfigurationError, match="song_pattern"):
            load_config(config_file)

    @pytest.mark.parametrize("value", [0, -1, "many", True])
    def test_invalid_max_retries_rejected(self, tmp_path, value):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text(yaml.safe_dump({'behaviour': {'max_retries': value}}))

        with pytest.raises(ConfigurationError, match="max_retries"):
            load_config(config_file)

    def test_invalid_log_level_rejected(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text(yaml.safe_dump({'logging': {'level': 'LOUD'}}))

        with pytest.raises(ConfigurationError, match="logging.level"):
            load_config(config_file)

    def test_frames_must_be_list_or_string(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text(yaml.safe_dump({'tags': {'frames': 42}}))

        with pytest.raises(ConfigurationError, match="tags.frames"):
            load_config(config_file)


class TestConfigTemplate:

    def test_ensure_config_file_creates_template_once(self, tmp_path):
        config_file = tmp_path / "conf" / "discocleaner.yaml"

        assert ensure_config_file(config_file) is True
        assert config_file.read_text() == get_config_template()
        assert ensure_config_file(config_file) is False

    def test_template_loads_to_defaults(self, tmp_path):
        config_file = tmp_path / "discocleaner.yaml"
        ensure_config_file(config_file)

        config = load_config(config_file)

        assert config['naming'] == {'song_pattern': None, 'album_pattern': None, 'album_mask': None}
        assert config['tags']['frames'] is None
        assert config['cover']['process_enabled'] is False


class TestHelpers:

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("off", False),
        ("12", 12),
        ('["TIT2", "TPE1"]', ["TIT2", "TPE1"]),
        ("cover.jpg", "cover.jpg"),
    ])
    def test_convert_env_value(self, raw, expected):
        assert _convert_env_value(raw) == expected

    def test_merge_keeps_base_for_empty_section(self):
        base = {'naming': {'album_mask': None}, 'behaviour': {'force': False}}

        merged = _merge_configs(base, {'naming': None, 'behaviour': {'force': True}})

        assert merged == {'naming': {'album_mask': None}, 'behaviour': {'force': True}}
