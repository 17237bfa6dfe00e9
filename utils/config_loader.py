"""
Configuration management for the library cleaner.

This module handles loading and validating configuration from YAML files
with sensible defaults and environment variable support.
"""

import json
import os
import re
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from utils.exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "discocleaner.yaml"
ENV_PREFIX = "DISCOCLEANER_"


@dataclass
class LibrarySettings:
    """Where the library lives and which programs may be launched on it."""

    path: str = "~/Music"
    file_manager: Optional[str] = None
    text_editor: Optional[str] = None
    audio_extensions: list = field(default_factory=lambda: ['.mp3'])


@dataclass
class NamingSettings:
    """Filename and album directory naming rules (regular expressions)."""

    song_pattern: Optional[str] = None
    album_pattern: Optional[str] = None
    album_mask: Optional[str] = None


@dataclass
class TagSettings:

    frames: Optional[list] = None
    custom_tag_allowed: bool = True


@dataclass
class CoverSettings:

    file_name: Optional[str] = None
    legacy_file_names: Optional[list] = None
    process_enabled: bool = False


@dataclass
class BehaviourSettings:

    force: bool = False
    max_retries: int = 20


@dataclass
class LoggingSettings:

    level: str = "INFO"
    file: Optional[str] = None
    run_log_enabled: bool = False
    show_run_log: bool = False
    run_log_file: str = "discocleaner.log"


@dataclass
class CleanerConfig:
    """Structured configuration class with defaults."""

    library: LibrarySettings = field(default_factory=LibrarySettings)
    naming: NamingSettings = field(default_factory=NamingSettings)
    tags: TagSettings = field(default_factory=TagSettings)
    cover: CoverSettings = field(default_factory=CoverSettings)
    behaviour: BehaviourSettings = field(default_factory=BehaviourSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file with defaults and environment variable support.

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If configuration is invalid
    """
    # Start with default configuration
    config_dict = _dataclass_to_dict(CleanerConfig())

    # Load from file if provided
    if config_path and config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except IOError as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}")

        if file_config:
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Config file {config_path} must contain a mapping")
            config_dict = _merge_configs(config_dict, file_config)

    # Override with environment variables
    config_dict = _apply_env_overrides(config_dict)

    # Validate configuration
    _validate_config(config_dict)

    return config_dict


def ensure_config_file(config_path: Path) -> bool:
    """
    Write the configuration template to config_path if no file exists there.

    Returns:
        True if a new file was created

    Raises:
        ConfigurationError: If the template cannot be written
    """
    if config_path.exists():
        return False

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(get_config_template(), encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"Cannot create config file {config_path}: {e}")

    return True


def _dataclass_to_dict(obj) -> Dict[str, Any]:
    """Convert dataclass to dictionary recursively."""
    if hasattr(obj, '__dataclass_fields__'):
        result = {}
        for field_name in obj.__dataclass_fields__:
            value = getattr(obj, field_name)
            result[field_name] = _dataclass_to_dict(value)
        return result
    elif isinstance(obj, dict):
        return {k: _dataclass_to_dict(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_dataclass_to_dict(item) for item in obj]
    else:
        return obj


def _merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge configuration dictionaries.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        # A section whose keys are all commented out loads as None
        if value is None and isinstance(result.get(key), dict):
            continue
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Environment variables should be prefixed with DISCOCLEANER_ and use
    double underscores to represent nested keys.

    Examples:
        DISCOCLEANER_BEHAVIOUR__FORCE=true
        DISCOCLEANER_LIBRARY__PATH=/srv/music
    """
    for env_var, value in os.environ.items():
        if not env_var.startswith(ENV_PREFIX):
            continue

        # Parse the key path
        key_path = env_var[len(ENV_PREFIX):].lower().split('__')

        # Set the value in the config dictionary
        _set_nested_value(config, key_path, _convert_env_value(value))

    return config


def _convert_env_value(value: str) -> Any:
    """Convert environment variable string to appropriate Python type."""
    # Boolean values
    if value.lower() in ('true', 'yes', 'on'):
        return True
    elif value.lower() in ('false', 'no', 'off'):
        return False

    # Integer values
    try:
        return int(value)
    except ValueError:
        pass

    # JSON/List values (if starts with [ or {)
    if value.startswith(('[', '{')):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    # String value (default)
    return value


def _set_nested_value(config: Dict[str, Any], key_path: list, value: Any):
    """Set a value in a nested dictionary using a list of keys."""
    current = config

    # Navigate to the parent of the target key
    for key in key_path[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    # Set the final value
    current[key_path[-1]] = value


def _validate_config(config: Dict[str, Any]):
    """
    Validate configuration values.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ConfigurationError: If configuration is invalid
    """
    library_config = config.get('library', {})

    if not library_config.get('path'):
        raise ConfigurationError("library.path must be set")

    audio_extensions = library_config.get('audio_extensions', [])
    if not isinstance(audio_extensions, list) or not audio_extensions:
        raise ConfigurationError("library.audio_extensions must be a non-empty list")

    # Validate naming patterns
    naming_config = config.get('naming', {})

    for key in ('song_pattern', 'album_pattern'):
        pattern = naming_config.get(key)
        if pattern is None:
            continue
        try:
            re.compile(pattern)
        except (re.error, TypeError) as e:
            raise ConfigurationError(f"naming.{key} is not a valid regular expression: {e}")

    # Validate list settings
    for section, key in (('tags', 'frames'), ('cover', 'legacy_file_names')):
        value = config.get(section, {}).get(key)
        if value is not None and not isinstance(value, (list, str)):
            raise ConfigurationError(f"{section}.{key} must be a list or a comma separated string")

    # Validate behaviour configuration
    behaviour_config = config.get('behaviour', {})

    max_retries = behaviour_config.get('max_retries', 20)
    if not isinstance(max_retries, int) or isinstance(max_retries, bool) or max_retries < 1:
        raise ConfigurationError("behaviour.max_retries must be a positive integer")

    # Validate logging configuration
    logging_config = config.get('logging', {})

    log_level = logging_config.get('level', 'INFO')
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if not isinstance(log_level, str) or log_level.upper() not in valid_levels:
        raise ConfigurationError(f"logging.level must be one of {valid_levels}")


def get_config_template() -> str:
    """
    Get a YAML template for the configuration file.

    Returns:
        YAML configuration template as string
    """
    return """# Configuration for discocleaner
library:
  path: "~/Music"
  # file_manager: "nautilus"   # opened on directories that need manual fixing
  # text_editor: "gedit"       # opened on the run log when show_run_log is set
  audio_extensions:
    - .mp3

naming:
  # song_pattern: "^\\\\d{2} - .+\\\\.mp3$"
  # album_pattern: "^.+ - .+ \\\\(\\\\d{4}\\\\)$"
  # album_mask: "%a - %b (%y)"          # %a artist, %b album, %y year

tags:
  # frames: [APIC, TALB, TIT2, TPE1, TRCK, TYER]
  custom_tag_allowed: true

cover:
  # file_name: "cover.jpg"
  # legacy_file_names: [folder.jpg, Folder.jpg, front.jpg, cover.png]
  process_enabled: false

behaviour:
  force: false       # answer yes to every rename/delete/clean question
  max_retries: 20

logging:
  level: INFO
  # file: "discocleaner-debug.log"
  run_log_enabled: false
  show_run_log: false
  run_log_file: "discocleaner.log"
"""
