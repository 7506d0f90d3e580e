"""
Centralized Configuration Management

Manages all configuration sources, lowest precedence first:
- Default settings
- User settings ($XDG_CONFIG_HOME/cdj-playlist/settings.json)
- Explicit config file (--config)
- Environment (CDJ_PLAYLIST_STORE)
- CLI overrides
"""

import json
import logging
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .constants import (
    ANALYSIS_TIMEOUT,
    DEFAULT_STORE_PATH,
    EXPORT_TIMEOUT,
    QUALITY_TIMEOUT,
    STORE_ENV_VAR,
)
from .presets import PresetTable


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when a configuration source cannot be used"""
    pass


@dataclass
class AnalysisConfig:
    """Track analysis configuration"""
    quality: bool = False
    seed: Optional[int] = None
    analysis_timeout: float = ANALYSIS_TIMEOUT
    quality_timeout: float = QUALITY_TIMEOUT


@dataclass
class ProcessingConfig:
    """Batch processing configuration"""
    max_workers: Optional[int] = None      # derived from the CPU count
    lock_timeout: Optional[float] = None   # wait forever


@dataclass
class ExportConfig:
    """Export configuration"""
    timeout: float = EXPORT_TIMEOUT


@dataclass
class UIConfig:
    """User interface configuration"""
    progress: bool = True
    log_level: str = "WARNING"
    color_output: bool = True
    verbose_errors: bool = False


@dataclass
class CdjPlaylistConfig:
    """Complete configuration for CDJ Playlist"""
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    ui: UIConfig = field(default_factory=UIConfig)

    store_path: str = DEFAULT_STORE_PATH
    presets: Optional[List[Any]] = None    # [name, min, max] entries, default preset first

    def preset_table(self) -> PresetTable:
        if not self.presets:
            return PresetTable.builtin()
        entries = []
        for entry in self.presets:
            if isinstance(entry, Mapping):
                entry = (entry['name'], entry['min'], entry['max'])
            entries.append(entry)
        return PresetTable(entries)


class ConfigManager:
    """
    Configuration manager with hierarchical loading:
    1. Default settings
    2. User settings file
    3. Explicit config file
    4. Environment
    5. CLI arguments
    """

    SECTIONS = {
        'analysis': AnalysisConfig,
        'processing': ProcessingConfig,
        'export': ExportConfig,
        'ui': UIConfig,
    }

    def __init__(self, user_config_dir: Optional[Path] = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.logger = logging.getLogger(__name__)
        self.environ = os.environ if environ is None else environ
        self.user_config_dir = Path(user_config_dir) if user_config_dir else self._get_user_config_dir()
        self._config: Optional[CdjPlaylistConfig] = None

    def _get_user_config_dir(self) -> Path:
        """Get platform-appropriate user config directory"""
        system = platform.system()

        if system == "Darwin":
            base = Path("~/Library/Application Support")
        else:
            base = Path(self.environ.get("XDG_CONFIG_HOME") or "~/.config")

        return (base / "cdj-playlist").expanduser()

    @property
    def user_config_path(self) -> Path:
        return self.user_config_dir / "settings.json"

    def load_config(self,
                    config_file: Optional[Union[str, Path]] = None,
                    cli_overrides: Optional[Dict[str, Any]] = None) -> CdjPlaylistConfig:
        """
        Load configuration from all sources with proper precedence.

        Args:
            config_file: Explicit JSON config file, must exist
            cli_overrides: Command-line argument overrides (nested dict, ``None`` values ignored)

        Returns:
            Complete configuration object

        Raises:
            ConfigError: the explicit config file is unreadable or any value is malformed
        """
        config_dict = asdict(CdjPlaylistConfig())

        if self.user_config_path.exists():
            try:
                user_settings = self._load_json_config(self.user_config_path)
            except ConfigError as e:
                self.logger.error(f"Ignoring user config: {e}")
            else:
                config_dict = self._merge_configs(config_dict, user_settings)
                self.logger.info(f"Loaded user config: {self.user_config_path}")

        if config_file:
            config_dict = self._merge_configs(config_dict, self._load_json_config(Path(config_file)))
            self.logger.info(f"Loaded config file: {config_file}")

        store = self.environ.get(STORE_ENV_VAR)
        if store:
            config_dict['store_path'] = store
            self.logger.debug(f"Store path from {STORE_ENV_VAR}: {store}")

        if cli_overrides:
            config_dict = self._merge_configs(config_dict, self._drop_unset(cli_overrides))
            self.logger.debug("Applied CLI overrides")

        self._config = self._dict_to_config(config_dict)
        return self._config

    def get_config(self) -> CdjPlaylistConfig:
        """Get current configuration (load if not already loaded)"""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def _load_json_config(self, config_path: Path) -> Dict[str, Any]:
        """Load JSON configuration file"""
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Failed to load config {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config {config_path} must contain a JSON object")
        return data

    def _merge_configs(self, base: Dict, override: Dict) -> Dict:
        """Deep merge configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _drop_unset(self, overrides: Dict) -> Dict:
        result = {}
        for key, value in overrides.items():
            if isinstance(value, dict):
                value = self._drop_unset(value)
                if not value:
                    continue
            elif value is None:
                continue
            result[key] = value
        return result

    def _dict_to_config(self, config_dict: Dict) -> CdjPlaylistConfig:
        """Convert dictionary to config dataclass"""
        sections = {}
        for name, section_type in self.SECTIONS.items():
            values = config_dict.get(name) or {}
            try:
                sections[name] = section_type(**values)
            except TypeError as e:
                raise ConfigError(f"Invalid '{name}' settings: {e}") from e

        config = CdjPlaylistConfig(**sections)

        for key, value in config_dict.items():
            if key in self.SECTIONS:
                continue
            if not hasattr(config, key):
                self.logger.warning(f"Unknown config key ignored: {key}")
                continue
            setattr(config, key, value)

        return config

    def validate_config(self, config: CdjPlaylistConfig) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        if config.processing.max_workers is not None and config.processing.max_workers < 1:
            issues.append("max_workers must be at least 1")

        if config.processing.lock_timeout is not None and config.processing.lock_timeout < 0:
            issues.append("lock_timeout must not be negative")

        for name, value in (("analysis_timeout", config.analysis.analysis_timeout),
                            ("quality_timeout", config.analysis.quality_timeout),
                            ("export timeout", config.export.timeout)):
            if value <= 0:
                issues.append(f"{name} must be positive")

        if config.ui.log_level.upper() not in LOG_LEVELS:
            issues.append(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if not config.store_path:
            issues.append("store_path must not be empty")
        elif not Path(config.store_path).expanduser().parent.exists():
            issues.append(f"Store directory does not exist: {Path(config.store_path).parent}")

        try:
            config.preset_table()
        except (KeyError, TypeError, ValueError) as e:
            issues.append(f"Invalid presets: {e}")

        return issues
