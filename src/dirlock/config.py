"""Configuration management for dirlock."""

import os
import tomllib
from pathlib import Path
from typing import Literal

import tomli_w
from pydantic import BaseModel, Field

CONFIG_ENV_VAR = "DIRLOCK_CONFIG"


class LockConfig(BaseModel):
    """Settings for lock status evaluation."""

    start_time_tolerance_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Max difference between recorded and actual process start time",
    )
    liveness_backend: Literal["auto", "psutil", "procfs"] = Field(
        default="auto", description="Process introspection backend"
    )


class DirlockConfig(BaseModel):
    """Root configuration for dirlock."""

    lock: LockConfig = Field(default_factory=LockConfig)


def resolve_config_path(path: Path | None = None) -> Path | None:
    """Return the explicit config path, or the one named by DIRLOCK_CONFIG."""
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else None


def load_config(path: Path | None = None) -> DirlockConfig:
    """Load config from a TOML file.

    Args:
        path: Path to config.toml (falls back to $DIRLOCK_CONFIG)

    Returns:
        Loaded configuration, or defaults if no config file exists
    """
    config_path = resolve_config_path(path)
    if config_path is None or not config_path.exists():
        return DirlockConfig()
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return DirlockConfig.model_validate(data)


def write_config_template(path: Path) -> Path:
    """Write default config.toml template.

    Args:
        path: Destination file

    Returns:
        Path to the written config file
    """
    template = {
        "lock": {
            # Recorded and actual start time of the holder may differ by
            # timestamp resolution; larger gaps mean the PID was reused
            "start_time_tolerance_seconds": 2.0,
            "liveness_backend": "auto",
        },
    }
    with open(path, "wb") as f:
        tomli_w.dump(template, f)
    return path
