"""Configuration management for ledgerlink."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ledgerlink.errors import ConfigError

# Default config filename
CONFIG_FILENAME = "config.json"
SESSION_FILENAME = "session.json"

DEFAULT_PAGE_SIZE = 20
DEFAULT_AUTOCOMPLETE_MIN_CHARS = 1

ENDPOINT_KEYS = (
    "filter_endpoint",
    "export_endpoint",
    "upload_endpoint",
    "category_autocomplete_endpoint",
    "description_autocomplete_endpoint",
)


@dataclass(frozen=True)
class Endpoints:
    """API endpoint URLs."""

    filter_endpoint: str
    export_endpoint: str
    upload_endpoint: str
    category_autocomplete_endpoint: str
    description_autocomplete_endpoint: str


@dataclass(frozen=True)
class AuthConfig:
    """Login credentials the client verifies against."""

    username: str
    password_hash: str


def get_config_dir() -> Path:
    """Get the config directory path (XDG compliant)."""
    xdg_config_home = os.getenv("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config_home) / "ledgerlink"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_config_dir() / CONFIG_FILENAME


def get_session_path() -> Path:
    """Get the path of the session file holding the login state."""
    return get_config_dir() / SESSION_FILENAME


def find_config_file() -> Path | None:
    """Find the config file in standard locations.

    Searches for config in the following order:
    1. config.json in current directory
    2. XDG config: ~/.config/ledgerlink/config.json
    """
    config_paths = [
        Path(CONFIG_FILENAME),
        get_config_path(),
    ]

    for path in config_paths:
        if path.exists():
            return path

    return None


def load_json_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    try:
        with open(config_path) as f:
            return json.load(f)  # type: ignore[no-any-return]
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e


def save_json_config(config: dict[str, Any], config_path: Path | None = None) -> Path:
    """Save configuration to a JSON file.

    Args:
        config: Configuration dictionary to save
        config_path: Path to save to (defaults to XDG config location)

    Returns:
        Path where config was saved
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)
        f.write("\n")

    return config_path


def load_config(config_path: Path | None = None) -> dict[str, Any] | None:
    """Load configuration from config file.

    Args:
        config_path: Explicit path to config.json file

    Returns:
        Loaded config dict or None if not found
    """
    if config_path:
        return load_json_config(config_path)

    config_file = find_config_file()
    if config_file:
        return load_json_config(config_file)

    return None


def config_exists() -> bool:
    """Check if any config file exists."""
    return find_config_file() is not None


def get_endpoints(config: dict[str, Any] | None) -> Endpoints:
    """Get API endpoints from config.

    Raises:
        ConfigError: If any endpoint is missing or blank
    """
    api = (config or {}).get("api") or {}
    missing = [key for key in ENDPOINT_KEYS if not api.get(key)]
    if missing:
        raise ConfigError(f"Missing API endpoints in config: {', '.join(missing)}")

    return Endpoints(**{key: str(api[key]) for key in ENDPOINT_KEYS})


def get_auth_config(config: dict[str, Any] | None) -> AuthConfig:
    """Get the username and bcrypt password hash from config."""
    auth = (config or {}).get("auth") or {}
    username = auth.get("username")
    password_hash = auth.get("password_hash")
    if not username or not password_hash:
        raise ConfigError("Config must define auth.username and auth.password_hash")
    return AuthConfig(username=str(username), password_hash=str(password_hash))


def _get_positive_int(config: dict[str, Any] | None, key: str, default: int) -> int:
    settings = (config or {}).get("settings") or {}
    value = settings.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"settings.{key} must be a positive integer, got {value!r}")
    return value


def get_page_size(config: dict[str, Any] | None = None) -> int:
    """Get the listing page size (default 20)."""
    return _get_positive_int(config, "page_size", DEFAULT_PAGE_SIZE)


def get_autocomplete_min_chars(config: dict[str, Any] | None = None) -> int:
    """Get the minimum input length before autocomplete queries the API."""
    return _get_positive_int(config, "autocomplete_min_chars", DEFAULT_AUTOCOMPLETE_MIN_CHARS)


def create_default_config() -> dict[str, Any]:
    """Create a default empty configuration."""
    return {
        "api": {key: "" for key in ENDPOINT_KEYS},
        "auth": {
            "username": "",
            "password_hash": "",
        },
        "settings": {
            "page_size": DEFAULT_PAGE_SIZE,
            "autocomplete_min_chars": DEFAULT_AUTOCOMPLETE_MIN_CHARS,
        },
    }
