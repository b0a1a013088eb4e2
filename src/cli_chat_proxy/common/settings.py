"""Proxy configuration: defaults, optional YAML file, then environment overrides."""
from __future__ import annotations
import os
import shlex
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "configs/proxy.yaml"
DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

class ProxySettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    cli_command: List[str] = Field(default_factory=lambda: ["claude"], min_length=1)
    cli_timeout: Optional[float] = None  # seconds; None waits forever
    default_model: str = DEFAULT_MODEL
    log_level: str = "INFO"

def load_cfg(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if os.getenv("PORT"):
        overrides["port"] = int(os.environ["PORT"])
    if os.getenv("HOST"):
        overrides["host"] = os.environ["HOST"]
    if os.getenv("CLI_COMMAND"):
        overrides["cli_command"] = shlex.split(os.environ["CLI_COMMAND"])
    if os.getenv("CLI_TIMEOUT"):
        overrides["cli_timeout"] = float(os.environ["CLI_TIMEOUT"])
    if os.getenv("DEFAULT_MODEL"):
        overrides["default_model"] = os.environ["DEFAULT_MODEL"]
    if os.getenv("LOG_LEVEL"):
        overrides["log_level"] = os.environ["LOG_LEVEL"]
    return overrides

def load_settings(path: Optional[str] = None) -> ProxySettings:
    """
    Build settings once at startup.

    Args:
        path: YAML config path. Defaults to $CONFIG_PATH or configs/proxy.yaml;
            a missing file is skipped.
    """
    path = path or os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH)
    data: dict[str, Any] = {}
    if Path(path).exists():
        data = load_cfg(path)
    # a bare string command in YAML is split like the env var
    if isinstance(data.get("cli_command"), str):
        data["cli_command"] = shlex.split(data["cli_command"])
    data.update(_env_overrides())
    return ProxySettings(**data)
