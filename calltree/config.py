from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError
from .utils import read_json


@dataclass
class MonitorConfig:
    refresh_interval: float = 0.5
    spinner_interval: float = 0.1
    min_function_width: int = 20
    max_function_width: int = 50
    status_width: int = 40
    log_level: str = "INFO"

    def validate(self) -> "MonitorConfig":
        self.log_level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"unknown log_level: {self.log_level!r}")
        if self.refresh_interval <= 0:
            raise ConfigError(f"refresh_interval must be positive, got {self.refresh_interval}")
        if self.spinner_interval <= 0:
            raise ConfigError(f"spinner_interval must be positive, got {self.spinner_interval}")
        if self.min_function_width < 4 or self.status_width < 4:
            raise ConfigError("column widths must be at least 4 characters")
        if self.min_function_width > self.max_function_width:
            raise ConfigError(
                f"min_function_width ({self.min_function_width}) exceeds "
                f"max_function_width ({self.max_function_width})"
            )
        return self


_ENV_OVERRIDES = {
    "CALLTREE_REFRESH_INTERVAL": "refresh_interval",
    "CALLTREE_SPINNER_INTERVAL": "spinner_interval",
    "CALLTREE_LOG_LEVEL": "log_level",
}


def _coerce(name: str, value: Any, default: Any) -> Any:
    try:
        if isinstance(default, int):
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValueError(value)
            return int(value)
        if isinstance(default, float):
            return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid value for {name}: {value!r}") from exc
    return str(value)


def config_from_dict(payload: Mapping[str, Any]) -> MonitorConfig:
    defaults = MonitorConfig()
    known = {f.name for f in fields(MonitorConfig)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
    values = {
        name: _coerce(name, value, getattr(defaults, name))
        for name, value in payload.items()
    }
    return MonitorConfig(**values)


def load_monitor_config(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> MonitorConfig:
    payload: Dict[str, Any] = {}
    if path:
        try:
            data = read_json(path)
        except (OSError, ValueError) as exc:
            raise ConfigError(f"cannot read config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a JSON object")
        payload.update(data)

    env = os.environ if environ is None else environ
    for var, name in _ENV_OVERRIDES.items():
        if env.get(var):
            payload[name] = env[var]

    return config_from_dict(payload).validate()


def config_to_dict(config: MonitorConfig) -> Dict[str, Any]:
    return asdict(config)


__all__ = ["MonitorConfig", "config_from_dict", "load_monitor_config", "config_to_dict"]
