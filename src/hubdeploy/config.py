"""Deployment configuration models and YAML loader."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field


class ConfigError(ValueError):
    """Raised when the deployment configuration cannot be used."""


class DeploymentConfig(BaseModel):
    """One deployment target as declared in the configuration file."""

    model_config = ConfigDict(extra="forbid")

    # Handler type (i.e. "dockerhub"); also the webhook path segment.
    type: str = ""
    disabled: bool = False
    work_dir: str = ""
    command: List[str] = Field(default_factory=list)
    # Handler-specific settings, validated by the owning handler.
    payload: Any = None


class ServerConfig(BaseModel):
    """Top level configuration file."""

    model_config = ConfigDict(extra="forbid")

    server_url: str = ""
    cert: str = ""
    key: str = ""
    results_dir: str = ""
    deployments: List[DeploymentConfig] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return all(deployment.disabled for deployment in self.deployments)

    def with_cert(self, cert: Optional[str], key: Optional[str]) -> "ServerConfig":
        """Returns a copy with TLS material overridden, only when both parts are given."""
        if not cert or not key:
            return self
        return self.model_copy(update={"cert": cert, "key": key})

    @property
    def tls_enabled(self) -> bool:
        return bool(self.cert and self.key)


def parse_config(payload: Any) -> ServerConfig:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ConfigError("configuration must be a mapping")
    try:
        return ServerConfig.model_validate(payload)
    except Exception as exc:  # noqa: BLE001
        raise ConfigError(str(exc)) from exc


def load_config(filename: str | Path) -> ServerConfig:
    file_path = Path(filename).expanduser()
    if not file_path.exists():
        raise ConfigError(f"configuration file not found: {file_path}")

    with file_path.open("r", encoding="utf-8") as handle:
        try:
            payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {file_path}: {exc}") from exc
    return parse_config(payload)
