"""
vSphere VM Metrics Configuration

Loads collection settings from a YAML file and the environment.

Author: uldyssian-sh
License: MIT
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml

from .exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_METRIC = "cpu.usagemhz.average"

# Primary name first, legacy fallbacks after
ENV_VARS = {
    "host": ("VCENTER_HOST", "VCSA_SERVER"),
    "username": ("VCENTER_USERNAME", "QA_VCENTER_USERNAME"),
    "password": ("VCENTER_PASSWORD", "QA_VCENTER_PASSWORD"),
    "port": ("VCENTER_PORT",),
    "insecure": ("VCENTER_INSECURE",),
}

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class MonitorConfig:
    """vCenter connection and collection configuration"""
    host: str = ""
    username: str = ""
    password: str = ""
    port: int = 443
    insecure: bool = False
    metric: str = DEFAULT_METRIC
    interval_seconds: int = 20
    max_samples: int = 1
    concurrency: int = 1
    timeout: int = 60
    run_timeout: Optional[float] = None

    def __repr__(self) -> str:
        return (
            f"MonitorConfig(host={self.host!r}, username={self.username!r}, "
            f"port={self.port}, insecure={self.insecure}, metric={self.metric!r})"
        )

    @property
    def endpoint_url(self) -> str:
        """SDK endpoint of the vCenter server"""
        if self.port == 443:
            return f"https://{self.host}/sdk"
        return f"https://{self.host}:{self.port}/sdk"

    def validate(self) -> "MonitorConfig":
        """Check required settings, raising ConfigurationError on the first problem"""
        missing = [name for name in ("host", "username", "password") if not getattr(self, name)]
        if missing:
            variables = ", ".join(ENV_VARS[name][0] for name in missing)
            raise ConfigurationError(
                f"Missing required setting(s): {', '.join(missing)}. "
                f"Set {variables} or provide a config file."
            )

        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}")
        if self.interval_seconds <= 0:
            raise ConfigurationError(f"Interval must be positive: {self.interval_seconds}")
        if self.max_samples <= 0:
            raise ConfigurationError(f"Max samples must be positive: {self.max_samples}")
        if self.concurrency <= 0:
            raise ConfigurationError(f"Concurrency must be positive: {self.concurrency}")
        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive: {self.timeout}")
        if self.run_timeout is not None and self.run_timeout <= 0:
            raise ConfigurationError(f"Run timeout must be positive: {self.run_timeout}")
        if not self.metric:
            raise ConfigurationError("Metric name is required")

        return self


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: {value!r}")


def _coerce(config: MonitorConfig, overrides: Mapping[str, Any]) -> MonitorConfig:
    """Apply overrides, converting values to the field types"""
    types = {f.name: f.type for f in fields(MonitorConfig)}
    converted: Dict[str, Any] = {}

    for name, value in overrides.items():
        if value is None:
            continue
        field_type = types[name]
        try:
            if field_type in (bool, "bool"):
                converted[name] = _parse_bool(name, value)
            elif field_type in (int, "int"):
                converted[name] = int(value)
            elif name == "run_timeout":
                converted[name] = float(value)
            else:
                converted[name] = str(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid value for {name}: {value!r}")

    return replace(config, **converted)


def load_config_file(config_file: str) -> Dict[str, Any]:
    """Read settings from a YAML file"""
    path = Path(config_file)
    if not path.exists():
        raise ConfigurationError(f"Configuration file {config_file} not found.")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid configuration file {config_file}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_file} must contain a mapping")

    known = {f.name for f in fields(MonitorConfig)}
    settings = {}
    for key, value in data.items():
        name = key[len("vcenter_"):] if key.startswith("vcenter_") else key
        if name not in known:
            logger.warning("Ignoring unknown configuration key", key=key, file=config_file)
            continue
        settings[name] = value

    return settings


def load_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Read settings from environment variables"""
    environ = os.environ if environ is None else environ
    settings = {}
    for name, variables in ENV_VARS.items():
        for variable in variables:
            value = environ.get(variable)
            if value:
                settings[name] = value
                break
    return settings


def load_config(config_file: Optional[str] = None,
                overrides: Optional[Mapping[str, Any]] = None,
                environ: Optional[Mapping[str, str]] = None) -> MonitorConfig:
    """
    Build the configuration for one run.

    Defaults are overridden by the config file, then by the environment,
    then by explicit overrides (command-line flags). The result is validated.
    """
    config = MonitorConfig()
    if config_file:
        config = _coerce(config, load_config_file(config_file))
    config = _coerce(config, load_env(environ))
    if overrides:
        config = _coerce(config, overrides)

    return config.validate()
