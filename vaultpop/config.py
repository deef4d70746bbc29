"""
Centralized configuration for vaultpop.

Preferences live in a YAML file in the per-user config directory. The file is
merged over compiled-in defaults field by field: an invalid value falls back
to its own default without discarding the rest of the file.

Usage:
    from vaultpop.config import get_config
    cfg = get_config()
    print(cfg.auto_close_hours)         # 4
    print(cfg.password_generation.words)  # 5
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"


@dataclass(frozen=True)
class Shortcut:
    """Single-key trigger that pre-fills the search query."""

    key: str
    search: str
    description: str | None = None

    @property
    def label(self) -> str:
        return self.description or self.search


@dataclass(frozen=True)
class PasswordGenerationConfig:
    """Defaults for the password generator."""

    type: str = "passphrase"  # passphrase | random

    # Random password
    length: int = 16
    uppercase: bool = True
    lowercase: bool = True
    number: bool = True
    special: bool = True

    # Passphrase
    words: int = 5
    separator: str = "-"
    capitalize: bool = True
    include_number: bool = True


@dataclass(frozen=True)
class Config:
    """Top-level vaultpop configuration."""

    auto_close_hours: float = 4
    clipboard_clear_seconds: float = 30
    max_visible_entries: int = 30
    totp_expiry_warning_seconds: int = 5
    shortcuts: tuple[Shortcut, ...] = ()
    password_generation: PasswordGenerationConfig = field(default_factory=PasswordGenerationConfig)

    @property
    def idle_threshold_seconds(self) -> float:
        return self.auto_close_hours * 60 * 60

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["shortcuts"] = [
            {k: v for k, v in asdict(s).items() if v is not None} for s in self.shortcuts
        ]
        return data


def get_config_dir() -> Path:
    """Resolve the config directory.

    Priority: $VAULTPOP_CONFIG_DIR > ./.data-dev inside a source checkout >
    ~/.config/vaultpop.
    """
    explicit = os.environ.get("VAULTPOP_CONFIG_DIR")
    if explicit:
        return Path(explicit)

    cwd = Path.cwd()
    dev_path = cwd / ".data-dev"
    if dev_path.is_dir() and (cwd / "vaultpop" / "cli.py").exists():
        return dev_path

    return Path.home() / ".config" / "vaultpop"


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number(raw: dict[str, Any], key: str, default: float, minimum: float, *, strict: bool) -> Any:
    value = raw.get(key, default)
    if not _is_number(value) or value < minimum or (strict and value == minimum):
        if key in raw:
            logger.warning("Invalid config value %s=%r, using default %r", key, value, default)
        return default
    return value


def _bool(raw: dict[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key, default)
    return value if isinstance(value, bool) else default


def _parse_shortcuts(raw: Any) -> tuple[Shortcut, ...]:
    if not isinstance(raw, list):
        return ()
    shortcuts = []
    for entry in raw:
        if (
            isinstance(entry, dict)
            and isinstance(entry.get("key"), str)
            and entry["key"]
            and isinstance(entry.get("search"), str)
        ):
            description = entry.get("description")
            shortcuts.append(
                Shortcut(
                    key=entry["key"],
                    search=entry["search"],
                    description=description if isinstance(description, str) else None,
                )
            )
        else:
            logger.warning("Ignoring invalid shortcut entry: %r", entry)
    return tuple(shortcuts)


def _parse_password_generation(raw: Any) -> PasswordGenerationConfig:
    defaults = PasswordGenerationConfig()
    if not isinstance(raw, dict):
        return defaults

    length = raw.get("length")
    words = raw.get("words")
    separator = raw.get("separator")
    return PasswordGenerationConfig(
        type="random" if raw.get("type") == "random" else "passphrase",
        length=length if isinstance(length, int) and not isinstance(length, bool) and length >= 5 else defaults.length,
        uppercase=_bool(raw, "uppercase", defaults.uppercase),
        lowercase=_bool(raw, "lowercase", defaults.lowercase),
        number=_bool(raw, "number", defaults.number),
        special=_bool(raw, "special", defaults.special),
        words=words if isinstance(words, int) and not isinstance(words, bool) and words >= 3 else defaults.words,
        separator=separator if isinstance(separator, str) else defaults.separator,
        capitalize=_bool(raw, "capitalize", defaults.capitalize),
        include_number=_bool(raw, "include_number", defaults.include_number),
    )


def parse_config(raw: Any) -> Config:
    """Merge a parsed YAML document over the defaults."""
    defaults = Config()
    if not isinstance(raw, dict):
        return defaults

    max_visible = _number(raw, "max_visible_entries", defaults.max_visible_entries, 0, strict=True)
    return Config(
        auto_close_hours=_number(raw, "auto_close_hours", defaults.auto_close_hours, 0, strict=True),
        clipboard_clear_seconds=_number(
            raw, "clipboard_clear_seconds", defaults.clipboard_clear_seconds, 0, strict=False
        ),
        max_visible_entries=int(max_visible),
        totp_expiry_warning_seconds=_number(
            raw, "totp_expiry_warning_seconds", defaults.totp_expiry_warning_seconds, 0, strict=False
        ),
        shortcuts=_parse_shortcuts(raw.get("shortcuts")),
        password_generation=_parse_password_generation(raw.get("password_generation")),
    )


def load_config(path: Path | None = None) -> Config:
    """Load config from disk, creating the file with defaults if missing."""
    path = path or get_config_path()
    if not path.exists():
        config = Config()
        try:
            save_config(config, path)
        except OSError as e:
            logger.warning("Could not write default config %s: %s", path, e)
        return config

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config %s: %s", path, e)
        return Config()

    return parse_config(raw)


def save_config(config: Config, path: Path | None = None) -> Path:
    path = path or get_config_path()
    write_config_text(yaml.safe_dump(config.to_dict(), sort_keys=False), path)
    return path


def write_config_text(text: str, path: Path | None = None) -> Path:
    """Write raw config YAML with owner-only permissions."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(text)
    path.chmod(0o600)
    return path


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from the config file."""
    global _config
    if _config is not None:
        return _config
    _config = load_config()
    return _config


def reload_config() -> Config:
    """Re-read the config file and replace the singleton in one step."""
    global _config
    _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
