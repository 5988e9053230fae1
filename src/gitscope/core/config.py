"""Configuration management for git-scope."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .paths import expand_path

DEFAULT_CONFIG: Dict[str, Any] = {
    "roots": ["~/code", "~/projects"],
    "ignore": ["node_modules", ".next", "dist", "build", "target", ".venv", "vendor"],
    "editor": "code",
}

# Directories that commonly hold repositories, checked when nothing is configured
SMART_DEFAULT_ROOTS = [
    "~/code",
    "~/Code",
    "~/projects",
    "~/Projects",
    "~/dev",
    "~/Dev",
    "~/work",
    "~/Work",
    "~/repos",
    "~/Repos",
    "~/src",
    "~/Developer",
    "~/Documents/GitHub",
    "~/Desktop/projects",
]


def default_config_path() -> Path:
    """Return the default config file path."""
    return Path.home() / ".config" / "git-scope" / "config.yml"


def smart_default_roots() -> List[str]:
    """Return the common project directories that exist on this machine.

    Falls back to the current working directory when none exist.
    """
    found = []
    for candidate in SMART_DEFAULT_ROOTS:
        path = expand_path(candidate)
        if os.path.isdir(path):
            found.append(path)
    return found or [os.getcwd()]


class Config:
    """Configuration class for git-scope."""

    def __init__(self) -> None:
        """Initialize configuration with defaults."""
        self.config: Dict[str, Any] = {}
        self.roots: List[str] = []
        self.ignore: List[str] = []
        self.editor: str = ""
        self._merge_config(DEFAULT_CONFIG)

    @staticmethod
    def exists(config_file: Optional[Union[str, Path]] = None) -> bool:
        """Check whether a config file is present."""
        path = Path(config_file) if config_file else default_config_path()
        return path.is_file()

    @classmethod
    def load(cls, config_file: Optional[Union[str, Path]] = None) -> Config:
        """Create a configuration from defaults merged with ``config_file``."""
        config = cls()
        config.load_config(Path(config_file) if config_file else default_config_path())
        return config

    def load_config(self, config_file: Optional[Path] = None) -> None:
        """Load configuration from file.

        A missing file leaves the defaults in place.

        Raises:
            ValueError: If the file cannot be read or parsed, or holds values
                of the wrong type.
        """
        if config_file is None or not config_file.exists():
            return

        try:
            with open(config_file, "r") as f:
                user_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ValueError(f"Error loading config file {config_file}: {e}") from e

        if user_config:
            self._merge_config(user_config)

    def _merge_config(self, config: Dict[str, Any]) -> None:
        """Merge configuration with current configuration."""
        if not isinstance(config, dict):
            raise ValueError("Configuration must be a dictionary")

        self.config.update(config)

        if "roots" in config:
            if not isinstance(config["roots"], list):
                raise ValueError("roots must be a list")
            self.roots = [expand_path(str(p)) for p in config["roots"]]

        if "ignore" in config:
            if not isinstance(config["ignore"], list):
                raise ValueError("ignore must be a list")
            self.ignore = [str(p) for p in config["ignore"]]

        if "editor" in config:
            if not isinstance(config["editor"], str):
                raise ValueError("editor must be a string")
            self.editor = config["editor"]

    def load_from_dict(self, config_data: Dict[str, Any]) -> None:
        """Merge settings from a dictionary.

        Example:
            ```python
            config = Config()
            config.load_from_dict({"roots": ["~/work"], "editor": "nvim"})
            ```
        """
        self._merge_config(config_data)

    def validate(self) -> List[str]:
        """Validate configuration."""
        errors = []

        if not self.roots:
            errors.append("roots must contain at least one directory")
        for root in self.roots:
            if not os.path.isdir(root):
                errors.append(f"root {root} does not exist")

        for pattern in self.ignore:
            if not pattern:
                errors.append("ignore patterns must not be empty")

        if not self.editor.strip():
            errors.append("editor must not be empty")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Return the settings that are written back to disk."""
        return {"roots": list(self.roots), "ignore": list(self.ignore), "editor": self.editor}

    def write(self, config_file: Optional[Union[str, Path]] = None) -> Path:
        """Write the configuration as YAML and return the file path."""
        path = Path(config_file) if config_file else default_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        return path

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw configuration value.

        Args:
            key: The configuration key to get.
            default: The default value to return if the key is not found.

        Returns:
            The configuration value, or the default if not found.
        """
        return self.config.get(key, default)
