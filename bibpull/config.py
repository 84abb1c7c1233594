"""
Configuration management for bibpull.

Configuration is loaded in layers, with later layers overriding earlier ones:
1. Package default config (bibpull/config.yaml) - always loaded as base defaults
2. User global config (~/.config/bibpull/config.yaml)
3. Explicit config path (if provided) or local ./bibpull.yaml
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import logging

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

PACKAGE_CONFIG_PATH = Path(__file__).parent / "config.yaml"
LOCAL_CONFIG_NAME = "bibpull.yaml"


def get_config_dir(package_name: str = 'bibpull') -> Path:
    """Get the user config directory (~/.config/{package_name}/)."""
    return Path.home() / '.config' / package_name


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base dictionary (defaults)
        override: Override dictionary (will overwrite base values)

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _read_yaml(path: Path) -> Dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(config_path: Optional[Union[str, Path]] = None,
                user_config_path: Optional[Path] = None) -> Dict:
    """
    Load configuration from YAML files with defaults and overrides.

    Args:
        config_path: Explicit config file, used as final override. If not
                     provided, ./bibpull.yaml is used when present.
        user_config_path: User config location (default: ~/.config/bibpull/config.yaml)

    Returns:
        Dictionary with merged config values

    Raises:
        ConfigError: If an explicit config file is missing or any file is invalid
    """
    config = _read_yaml(PACKAGE_CONFIG_PATH) if PACKAGE_CONFIG_PATH.exists() else {}
    logger.debug(f"Loaded package defaults from {PACKAGE_CONFIG_PATH}")

    if user_config_path is None:
        user_config_path = get_config_dir() / "config.yaml"
    if user_config_path.exists():
        config = _deep_merge(config, _read_yaml(user_config_path))
        logger.debug(f"Loaded user config from {user_config_path}")

    if config_path:
        override_path = Path(config_path).expanduser()
        if not override_path.exists():
            raise ConfigError(f"Config file {config_path} not found")
    else:
        override_path = Path(LOCAL_CONFIG_NAME).resolve()

    if override_path.exists():
        config = _deep_merge(config, _read_yaml(override_path))
        logger.info(f"Loaded override config from {override_path}")

    return config


@dataclass
class BackoffSettings:
    base: float = 1.0
    factor: float = 2.0
    max: float = 30.0
    jitter: float = 0.5


@dataclass
class Settings:
    """Validated runtime settings."""

    max_workers: int = 4
    max_retries: int = 3
    timeout: float = 30
    user_agent: str = "bibpull/0.3"
    mailto: str = ""
    output_dir: Path = Path("./attachments")
    backoff: BackoffSettings = field(default_factory=BackoffSettings)
    arxiv_cooldown: float = 3.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        """Build settings from a merged config mapping.

        Raises:
            ConfigError: On wrong types or out-of-range values
        """
        def number(value, name, kind=float, minimum=0):
            try:
                value = kind(value)
            except (TypeError, ValueError):
                raise ConfigError(f"{name} must be a number, got {value!r}")
            if value < minimum:
                raise ConfigError(f"{name} must be >= {minimum}, got {value}")
            return value

        defaults = cls()
        backoff = data.get("backoff") or {}
        arxiv = data.get("arxiv") or {}
        if not isinstance(backoff, dict) or not isinstance(arxiv, dict):
            raise ConfigError("backoff and arxiv must be mappings")

        jitter = number(backoff.get("jitter", defaults.backoff.jitter), "backoff.jitter")
        if jitter > 1:
            raise ConfigError(f"backoff.jitter must be <= 1, got {jitter}")

        return cls(
            max_workers=number(data.get("max_workers", defaults.max_workers), "max_workers", int, 1),
            max_retries=number(data.get("max_retries", defaults.max_retries), "max_retries", int, 1),
            timeout=number(data.get("timeout", defaults.timeout), "timeout"),
            user_agent=str(data.get("user_agent") or defaults.user_agent),
            mailto=str(data.get("mailto") or ""),
            output_dir=Path(str(data.get("output_dir", defaults.output_dir))).expanduser(),
            backoff=BackoffSettings(
                base=number(backoff.get("base", defaults.backoff.base), "backoff.base"),
                factor=number(backoff.get("factor", defaults.backoff.factor), "backoff.factor", float, 1),
                max=number(backoff.get("max", defaults.backoff.max), "backoff.max"),
                jitter=jitter,
            ),
            arxiv_cooldown=number(arxiv.get("cooldown", defaults.arxiv_cooldown), "arxiv.cooldown"),
        )

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None) -> "Settings":
        return cls.from_mapping(load_config(config_path))
