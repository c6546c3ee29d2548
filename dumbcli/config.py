import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

from dumbcli.errors import ConfigDirError

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "DUMBCLI_HOME"


@dataclass(frozen=True)
class StoreConfig:
    """Locations of every file dumbcli persists"""
    config_dir: Path
    records_name: str = "dumbcli.json"
    counter_name: str = "counter.json"
    settings_name: str = "config.json"

    @classmethod
    def default(cls, env: Optional[Dict[str, str]] = None) -> "StoreConfig":
        """Build the per-user config, honouring DUMBCLI_HOME"""
        env = os.environ if env is None else env
        override = env.get(HOME_ENV_VAR)
        if override:
            return cls(config_dir=Path(override).expanduser())
        return cls(config_dir=Path.home() / ".dumbcli")

    @property
    def records_path(self) -> Path:
        return self.config_dir / self.records_name

    @property
    def counter_path(self) -> Path:
        return self.config_dir / self.counter_name

    @property
    def settings_path(self) -> Path:
        return self.config_dir / self.settings_name

    @property
    def backup_dir(self) -> Path:
        return self.config_dir / "backups"

    def ensure_dir(self) -> None:
        """Create the config directory, failing hard if that is impossible"""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigDirError(self.config_dir, e.strerror or str(e)) from e


class Config:
    """Manage dumbcli settings and themes"""

    THEMES = {
        "default": {
            "border_color": "cyan",
            "header_color": "cyan",
            "id_color": "yellow",
            "command_color": "white",
            "success_color": "green",
            "error_color": "red",
        },
        "ocean": {
            "border_color": "blue",
            "header_color": "bright_blue",
            "id_color": "cyan",
            "command_color": "bright_cyan",
            "success_color": "green",
            "error_color": "bright_red",
        },
        "forest": {
            "border_color": "green",
            "header_color": "bright_green",
            "id_color": "yellow",
            "command_color": "bright_yellow",
            "success_color": "bright_green",
            "error_color": "red",
        },
        "monochrome": {
            "border_color": "white",
            "header_color": "bright_white",
            "id_color": "white",
            "command_color": "bright_white",
            "success_color": "white",
            "error_color": "bright_white",
        },
    }

    DEFAULT_CONFIG = {
        "theme": "default",
        "auto_backup": True,
        "max_backups": 10,
        "confirm_delete": True,
        "confirm_run": True,
        "show_comments": True,
        "fuzzy_threshold": 70,
    }

    def __init__(self, store_config: StoreConfig):
        self.store_config = store_config
        self.config_path = store_config.settings_path
        self.config = self.load()

    def load(self) -> Dict[str, Any]:
        """Load configuration from file"""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    user_config = json.load(f)
                if isinstance(user_config, dict):
                    return self._merge(user_config)
                logger.warning("Ignoring %s: expected a JSON object", self.config_path)
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable settings file %s: %s", self.config_path, e)
        return self.DEFAULT_CONFIG.copy()

    def _merge(self, user_config: Dict[str, Any]) -> Dict[str, Any]:
        merged = self.DEFAULT_CONFIG.copy()
        for key, value in user_config.items():
            if key in self.DEFAULT_CONFIG and not self.is_valid(key, value):
                logger.warning("Ignoring invalid value %r for %s in %s", value, key, self.config_path)
                continue
            merged[key] = value
        return merged

    @classmethod
    def is_valid(cls, key: str, value: Any) -> bool:
        """Check a value against the type of the setting's default"""
        if key == "theme":
            return isinstance(value, str) and value in cls.THEMES
        expected = type(cls.DEFAULT_CONFIG[key])
        # bool is a subclass of int, so compare exact types
        if type(value) is not expected:
            return False
        return expected is not int or value >= 0

    def save(self) -> None:
        """Save configuration to file"""
        self.store_config.ensure_dir()
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.config, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value"""
        self.config[key] = value
        self.save()

    def get_theme(self) -> Dict[str, str]:
        """Get current theme colors"""
        theme_name = self.config.get("theme", "default")
        return self.THEMES.get(theme_name, self.THEMES["default"])
