"""
Configuration management for lyricsync

This module handles loading, validation, and management of application settings
from multiple sources including YAML files and environment variables. It provides
a centralized configuration system shared by the providers, the search
aggregator, the playback tracker and the CLI.

The configuration is organized into logical sections using dataclasses:
- Lyrics search settings (enabled sources, timeouts, merge tolerance)
- Playback tracker tuning (poll interval, seek detection threshold)
- Player adapter settings (mpv IPC endpoint)
- Logging, network and storage configuration
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

from ..exceptions import ConfigError

# Load environment variables from .env file if present
load_dotenv()


# Every provider identifier known to the lyrics registry
VALID_SOURCES = ['netease', 'kugou', 'lrclib']


@dataclass
class LyricsConfig:
    """
    Lyrics search and processing configuration

    Controls which providers take part in a search, how long each of them may
    take, how many candidates are fetched per provider and how translations
    are aligned with the original lines.
    """
    enabled_sources: list = field(default_factory=lambda: list(VALID_SOURCES))
    timeout: float = 10.0                 # Per-provider budget for search + fetch
    request_timeout: float = 8.0          # Single HTTP request timeout
    max_results_per_provider: int = 3
    translation_tolerance: float = 1.0    # Seconds between a line and its translation
    include_translations: bool = True
    save_directory: str = "~/.lyricsync/lyrics"


@dataclass
class TrackerConfig:
    """
    Playback tracker tuning

    The poll interval controls how often transport state is re-read when no
    track-change notification arrived. The position threshold is the drift
    (seconds) above which the tracker assumes the user seeked.
    """
    poll_interval: float = 1.0
    position_threshold: float = 1.5
    refresh_rate: float = 0.1             # Display refresh used by `follow`


@dataclass
class PlayerConfig:
    """
    Media player adapter configuration

    mpv must be started with ``--input-ipc-server=<endpoint>`` for the
    adapter to connect.
    """
    name: str = "mpv"
    mpv_ipc_endpoint: str = ""            # Empty means platform default
    connect_timeout: float = 3.0
    request_timeout: float = 1.0


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls application logging behavior including log levels, file output,
    rotation, and console formatting.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """
    Network and HTTP configuration settings
    """
    user_agent: str = "lyricsync/0.3"


@dataclass
class StorageConfig:
    """
    Storage configuration

    Location of the configuration directory used for config.yaml and logs.
    """
    config_directory: str = "~/.lyricsync/"


class Settings:
    """
    Main settings class that manages all configuration

    Loads settings from YAML, overrides them with environment variables and
    exposes one attribute per configuration section.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
        """
        self.config_path = config_path

        self.lyrics = LyricsConfig()
        self.tracker = TrackerConfig()
        self.player = PlayerConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()
        self.storage = StorageConfig()

        self._load_config()
        self._load_environment_variables()
        self._create_directories()

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        Searches for configuration files in multiple locations in order of
        precedence. The first file found will be used.
        """
        config_paths = [
            self.config_path,
            self.get_config_directory() / "config.yaml",
            Path("config/config.yaml"),
            Path("config.yaml")
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                    break
                except Exception as e:
                    print(f"Warning: Failed to load config from {path}: {e}")

        self._apply_config(config_data)

    def _sections(self) -> Dict[str, Any]:
        return {
            'lyrics': self.lyrics,
            'tracker': self.tracker,
            'player': self.player,
            'logging': self.logging,
            'network': self.network,
            'storage': self.storage,
        }

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Only attributes that exist on the section dataclass are updated;
        unknown keys are ignored.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """
        Load overrides from environment variables

        Environment variables take precedence over file-based configuration.
        """
        env_mappings = {
            'LYRICSYNC_MPV_SOCKET': lambda v: setattr(self.player, 'mpv_ipc_endpoint', v),
            'LYRICSYNC_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
            'LYRICSYNC_SOURCES': lambda v: setattr(
                self.lyrics, 'enabled_sources', [s.strip() for s in v.split(',') if s.strip()]
            ),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def _create_directories(self) -> None:
        """
        Create the configuration directory, warning on permission errors
        """
        directory = Path(self.storage.config_directory).expanduser()
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            print(f"Warning: Failed to create directory {directory}: {e}")

    def get_config_directory(self) -> Path:
        """
        Get the expanded config directory path

        Returns:
            Path object for the configuration directory
        """
        return Path(self.storage.config_directory).expanduser()

    def get_save_directory(self) -> Path:
        """Directory where `search --save` writes .lrc files"""
        return Path(self.lyrics.save_directory).expanduser()

    def save_config(self, path: Optional[str] = None) -> None:
        """
        Save current configuration to file

        Args:
            path: Custom path to save config, defaults to user config directory

        Raises:
            ConfigError: If the configuration cannot be saved
        """
        if not path:
            path = self.get_config_directory() / "config.yaml"
        else:
            path = Path(path)

        config_data = {
            name: self._dataclass_to_dict(section)
            for name, section in self._sections().items()
        }

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(config_data, f, default_flow_style=False, indent=2)
        except Exception as e:
            raise ConfigError(f"Failed to save config to {path}: {e}", details={'file_path': str(path)})

    def _dataclass_to_dict(self, obj) -> Dict[str, Any]:
        result = {}
        for key, value in obj.__dict__.items():
            result[key] = value
        return result

    def validate(self) -> bool:
        """
        Validate current configuration

        Returns:
            True if configuration is valid, False otherwise
        """
        errors = []

        for source in self.lyrics.enabled_sources:
            if source not in VALID_SOURCES:
                errors.append(f"Invalid lyrics source: {source}")

        if self.lyrics.timeout <= 0:
            errors.append(f"Provider timeout must be positive: {self.lyrics.timeout}")

        if self.lyrics.max_results_per_provider < 1:
            errors.append(
                f"max_results_per_provider must be at least 1: {self.lyrics.max_results_per_provider}"
            )

        if self.lyrics.translation_tolerance < 0:
            errors.append(f"Invalid translation tolerance: {self.lyrics.translation_tolerance}")

        if self.tracker.poll_interval <= 0:
            errors.append(f"Invalid poll interval: {self.tracker.poll_interval}")

        if self.tracker.position_threshold <= 0:
            errors.append(f"Invalid position threshold: {self.tracker.position_threshold}")

        if self.player.name != "mpv":
            errors.append(f"Unsupported player: {self.player.name}")

        if errors:
            print("Configuration validation errors:")
            for error in errors:
                print(f"  - {error}")
            return False

        return True

    def __str__(self) -> str:
        sections = [
            f"Sources: {', '.join(self.lyrics.enabled_sources)}",
            f"Timeout: {self.lyrics.timeout}s",
            f"Player: {self.player.name}",
            f"Poll: {self.tracker.poll_interval}s",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance for singleton pattern
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The global Settings instance
    """
    return settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global settings
    settings = Settings(config_path)
    return settings
