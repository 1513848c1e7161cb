from __future__ import annotations
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from qzshared.errors import ConfigurationError
from qzshared.log import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_NAME = "qzprint.yaml"
ENV_PREFIX = "QZPRINT_"


@dataclass
class BridgeSettings:
    """Settings consumed by the command-line tool to build a QZTrayPrinter."""
    certificate_url: Optional[str] = None
    certificate_file: Optional[str] = None
    sign_url: Optional[str] = None
    private_key_file: Optional[str] = None
    sign_algorithm: Optional[str] = None
    printer: Optional[str] = None
    insecure: bool = False

    def read_certificate(self) -> Optional[str]:
        if not self.certificate_file:
            return None
        try:
            return Path(self.certificate_file).expanduser().read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read certificate file {self.certificate_file}: {e}")

    def merged(self, **overrides: Any) -> "BridgeSettings":
        """Return a copy with every non-None override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return BridgeSettings(**values)


def default_config_path() -> Path:
    return Path(os.getenv(f"{ENV_PREFIX}CONFIG", DEFAULT_CONFIG_NAME)).expanduser()


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.debug("No %s found; using environment only", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return data


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(path: Optional[Path] = None) -> BridgeSettings:
    """
    Load settings from YAML, then apply QZPRINT_* environment overrides.

    Unknown YAML keys are ignored with a warning.
    """
    path = Path(path) if path is not None else default_config_path()
    data = _load_yaml(path)

    known = {f.name for f in fields(BridgeSettings)}
    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown setting '%s' in %s", key, path)
            continue
        values[key] = value

    for name in known:
        env_value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if env_value is None:
            continue
        values[name] = env_value

    if "insecure" in values:
        values["insecure"] = _as_bool("insecure", values["insecure"])
    return BridgeSettings(**values)


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _env_bool(value)
    raise ConfigurationError(f"Setting '{name}' must be a boolean, got {type(value).__name__}")
