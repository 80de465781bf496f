"""Configuration loading and validation for mesos_state_exporter."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class MasterConfig:
    """Where and how to reach the Mesos master."""

    url: str = "http://localhost:5050"
    state_path: str = "/state"
    timeout_seconds: float = 10.0


@dataclass
class ServerConfig:
    """Scrape endpoint settings."""

    listen_address: str = "0.0.0.0"
    port: int = 9105


@dataclass
class MetricsConfig:
    """Metric registry settings."""

    namespace: str = "mesos"
    slave_attribute_labels: list[str] = field(default_factory=list)
    # Clear the attribute metric every scrape instead of accumulating rows
    reset_attributes: bool = False


@dataclass
class ExporterConfig:
    """Top-level mesos_state_exporter configuration."""

    log_level: str = "INFO"
    master: MasterConfig = field(default_factory=MasterConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)


def _merge_dict(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *source* into *target*."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_dict(target[key], value)
        else:
            target[key] = value
    return target


def _split_labels(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using MESOS_EXPORTER_ prefix."""
    env_map = {
        "MESOS_EXPORTER_LOG_LEVEL": ("log_level",),
        "MESOS_EXPORTER_MASTER_URL": ("master", "url"),
        "MESOS_EXPORTER_MASTER_TIMEOUT": ("master", "timeout_seconds"),
        "MESOS_EXPORTER_LISTEN_ADDRESS": ("server", "listen_address"),
        "MESOS_EXPORTER_PORT": ("server", "port"),
        "MESOS_EXPORTER_SLAVE_ATTRIBUTE_LABELS": ("metrics", "slave_attribute_labels"),
    }
    for env_key, path in env_map.items():
        value = os.environ.get(env_key)
        if value is not None:
            obj = data
            for part in path[:-1]:
                obj = obj.setdefault(part, {})
            final_key = path[-1]
            if final_key == "timeout_seconds":
                obj[final_key] = float(value)
            elif final_key == "port":
                obj[final_key] = int(value)
            elif final_key == "slave_attribute_labels":
                obj[final_key] = _split_labels(value)
            else:
                obj[final_key] = value
    return data


def _section(cls: type, data: Any) -> Any:
    if not isinstance(data, dict):
        data = {}
    return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def _dict_to_config(data: dict[str, Any]) -> ExporterConfig:
    """Convert a raw dictionary to an ExporterConfig dataclass."""
    metrics = _section(MetricsConfig, data.get("metrics", {}))
    if isinstance(metrics.slave_attribute_labels, str):
        metrics.slave_attribute_labels = _split_labels(metrics.slave_attribute_labels)

    return ExporterConfig(
        log_level=str(data.get("log_level", "INFO")).upper(),
        master=_section(MasterConfig, data.get("master", {})),
        server=_section(ServerConfig, data.get("server", {})),
        metrics=metrics,
    )


def load_config(path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> ExporterConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``mesos_exporter.yaml`` in the current directory if *path* is
    None.  *overrides* (usually from the command line) win over both.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("mesos_exporter.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    if overrides:
        _merge_dict(data, overrides)
    return _dict_to_config(data)
