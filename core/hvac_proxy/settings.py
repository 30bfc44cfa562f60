"""
HVAC Proxy Configuration Settings

Settings are resolved from, in increasing priority:
1. config.yaml ``options`` section (development)
2. a .env file
3. process environment variables (DATA_DIR, BLOCK_UPDATES, MQTT_BROKER, ...)
"""

import logging
import os
import re
from dataclasses import dataclass, fields
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .filenames import FILENAME_STYLES, STRICT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "..", "..", "config.yaml")

_TRUE_VALUES = {"1", "t", "true", "yes", "on"}


def _camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class ProxySettings:
    """Runtime configuration for the proxy."""

    data_dir: str = "/data"  # Where captured bodies and metrics_last.txt go
    port: int = 8080
    block_updates: bool = False  # Strip <update> elements (firmware offers)
    filename_style: str = STRICT  # "strict" or legacy "pattern"
    upstream_timeout: float = 30.0  # Seconds
    log_level: str = "INFO"
    mqtt_broker: str = ""  # e.g. tcp://broker:1883, empty disables publishing
    mqtt_user: str = ""
    mqtt_password: str = ""
    mqtt_topic: str = "hvac/"
    mqtt_qos: int = 0
    mqtt_retained: bool = False
    mqtt_client_id: str = "hvac-proxy"

    def __post_init__(self):
        if self.filename_style not in FILENAME_STYLES:
            raise ConfigurationError(
                f"filename_style must be one of {FILENAME_STYLES}, got {self.filename_style!r}"
            )
        if self.mqtt_qos not in (0, 1, 2):
            raise ConfigurationError(f"mqtt_qos must be 0, 1 or 2, got {self.mqtt_qos}")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"port out of range: {self.port}")
        if self.upstream_timeout <= 0:
            raise ConfigurationError(f"upstream_timeout must be positive, got {self.upstream_timeout}")

    @property
    def mqtt_enabled(self) -> bool:
        return bool(self.mqtt_broker)

    @classmethod
    def from_dict(cls, data: dict) -> "ProxySettings":
        """Create from dictionary, converting values to the field types.

        Unknown keys are ignored with a warning.
        """
        known = {f.name: f for f in fields(cls)}
        converted = {}
        for key, value in data.items():
            name = _camel_to_snake(key)
            if name not in known:
                logger.warning(f"Ignoring unknown setting: {key}")
                continue
            if value is None:
                continue
            default = known[name].default
            try:
                if isinstance(default, bool):
                    converted[name] = _parse_bool(value)
                elif isinstance(default, (int, float)):
                    converted[name] = type(default)(value)
                else:
                    converted[name] = str(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e
        return cls(**converted)


def _load_yaml_options(config_path: str) -> dict:
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not load {config_path}: {e}") from e
    options = config.get("options", {}) or {}
    logger.debug(f"Loaded {len(options)} options from {config_path}")
    return options


def load_settings(config_path: Optional[str] = None, environ: Optional[dict] = None) -> ProxySettings:
    """Resolve settings from config.yaml, .env and the environment.

    Args:
        config_path: Path to config.yaml (defaults to HVAC_PROXY_CONFIG or
            the repository's config.yaml)
        environ: Environment mapping (defaults to os.environ after .env load)

    Raises:
        ConfigurationError: If a value is invalid
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    path = config_path or environ.get("HVAC_PROXY_CONFIG") or DEFAULT_CONFIG_PATH
    values = dict(_load_yaml_options(path))

    for f in fields(ProxySettings):
        env_value = environ.get(f.name.upper())
        if env_value is not None:
            values[f.name] = env_value

    return ProxySettings.from_dict(values)
