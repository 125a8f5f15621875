"""Configuration management for tvlink."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from tvlink.errors import ConfigError


DEFAULT_SCHEME = "watchtime"
DEFAULT_HOST = "tv-auth"


@dataclass
class ApiConfig:
    """Pairing backend configuration."""

    base_url: str = "http://127.0.0.1:3000/api"
    request_timeout: float = 30.0  # seconds, per HTTP request


@dataclass
class PairingConfig:
    """QR pairing protocol configuration."""

    scheme: str = DEFAULT_SCHEME
    host: str = DEFAULT_HOST
    poll_interval: float = 5.0  # seconds
    max_attempts: int = 60  # 5 minutes at the default interval
    qr_size: int = 512  # pixels

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive: {self.poll_interval}")
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be at least 1: {self.max_attempts}")
        if self.qr_size < 21:
            raise ConfigError(f"qr_size too small to be scannable: {self.qr_size}")


@dataclass
class Config:
    """tvlink configuration."""

    log_level: str = "INFO"
    log_file: str | None = None
    token_file: str = "~/.config/tvlink/credentials.json"
    api: ApiConfig = field(default_factory=ApiConfig)
    pairing: PairingConfig = field(default_factory=PairingConfig)


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "tvlink" / "config.yaml"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        return yaml.safe_load(content)
    except yaml.YAMLError:
        return None


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file or defaults.

    Raises:
        ConfigError: If a value has the wrong type or is out of range.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if not isinstance(data, dict):
        return Config()

    api_data = data.get("api") or {}
    pairing_data = data.get("pairing") or {}
    try:
        api_config, pairing_config = _parse_sections(api_data, pairing_data)
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid config value in {config_path}: {e}") from e

    return Config(
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        token_file=data.get("token_file", Config.token_file),
        api=api_config,
        pairing=pairing_config,
    )


def _parse_sections(
    api_data: dict[str, Any], pairing_data: dict[str, Any]
) -> tuple[ApiConfig, PairingConfig]:
    api_config = ApiConfig(
        base_url=api_data.get("base_url", ApiConfig.base_url),
        request_timeout=float(
            api_data.get("request_timeout", ApiConfig.request_timeout)
        ),
    )

    pairing_config = PairingConfig(
        scheme=pairing_data.get("scheme", PairingConfig.scheme),
        host=pairing_data.get("host", PairingConfig.host),
        poll_interval=float(
            pairing_data.get("poll_interval", PairingConfig.poll_interval)
        ),
        max_attempts=int(pairing_data.get("max_attempts", PairingConfig.max_attempts)),
        qr_size=int(pairing_data.get("qr_size", PairingConfig.qr_size)),
    )
    return api_config, pairing_config
