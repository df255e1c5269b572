"""
Module 09C - CLI Configuration

Configuration management for the rewards CLI.
Wraps the engine RuntimeConfig with CLI-only settings and supports
JSON or YAML files plus environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.config.runtime import RuntimeConfig


# Environment variable prefix
ENV_PREFIX = "REWARDS_"

DEFAULT_PATHS = (
    Path("rewards.json"),
    Path(".rewards.json"),
    Path("rewards.yaml"),
)


@dataclass
class CLIConfig:
    """Main CLI configuration."""

    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None


def _read_config_file(path: Path) -> dict[str, Any]:
    with open(path, "r") as f:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(f) or {}
        return json.load(f)


def load_config_from_file(path: Path) -> CLIConfig:
    """Load configuration from a JSON or YAML file."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = _read_config_file(path)
    cli_data = data.get("cli", {})
    runtime_data = {k: v for k, v in data.items() if k != "cli"}

    return CLIConfig(
        runtime=RuntimeConfig.from_dict(runtime_data),
        log_level=cli_data.get("log_level", "INFO"),
        log_file=cli_data.get("log_file"),
    )


def load_config(config_path: Path | None = None) -> CLIConfig:
    """
    Load configuration from file and/or environment.

    Environment variables override file settings.

    Args:
        config_path: Optional path to config file

    Returns:
        Merged configuration
    """
    config = CLIConfig()

    if config_path is not None:
        config = load_config_from_file(config_path)
    else:
        candidates = [Path.cwd() / p for p in DEFAULT_PATHS]
        candidates.append(Path.home() / ".config" / "rewards" / "config.json")
        for candidate in candidates:
            if candidate.exists():
                config = load_config_from_file(candidate)
                break

    config.runtime = config.runtime.with_env_overrides()
    if os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
        config.log_level = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO")
    if os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        config.log_file = os.getenv(f"{ENV_PREFIX}LOG_FILE")

    return config


def get_default_config_template() -> str:
    """Get a template configuration file."""
    data = RuntimeConfig().to_dict()
    data.pop("extra", None)
    data["cli"] = {"log_level": "INFO", "log_file": None}
    return json.dumps(data, indent=2) + "\n"
