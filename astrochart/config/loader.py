"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass, fields, is_dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import DefaultConfig, get_default_config

OVERLAY_CONFIG_FILE = "overlay.yaml"


def config_to_dict(obj: Any) -> Any:
    """Convert nested dataclasses (and dicts of dataclasses) to plain dicts."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: config_to_dict(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {key: config_to_dict(value) for key, value in obj.items()}
    return obj


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def params_from_dict(params_cls: type, section: Optional[dict[str, Any]]) -> Any:
    """Build a params dataclass from a config section, ignoring unknown keys."""
    known = {f.name for f in fields(params_cls)}
    return params_cls(**{k: v for k, v in (section or {}).items() if k in known})


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from the overlay YAML file, if present."""
        overlay_file = self.config_dir / OVERLAY_CONFIG_FILE

        if not overlay_file.exists():
            return {}

        with open(overlay_file) as f:
            file_config = yaml.safe_load(f)

        return file_config or {}

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Caller overrides (highest priority)
        2. Overlay YAML file
        3. Global defaults (lowest priority)
        """
        config = config_to_dict(self.defaults)

        config = deep_merge(config, self.load_file_config())

        if overrides:
            config = deep_merge(config, overrides)

        return config
