"""Handler registry, startup validation and deployment matching."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from hubdeploy.config import ConfigError, DeploymentConfig, ServerConfig

from .base import HookHandler

logger = logging.getLogger(__name__)


def tag_matches(tags: Iterable[str], tag: str | None) -> bool:
    """An empty filter admits any tag; otherwise the tag must be non-blank and listed."""
    tags = tuple(tags)
    if not tags:
        return True
    if not tag:
        return False
    return tag in tags


@dataclass
class DeploymentEntry:
    deployment: DeploymentConfig
    tags: Tuple[str, ...] = ()


class DeploymentTable:
    """Deployments of one handler type keyed by their identity (i.e. repository name)."""

    def __init__(self) -> None:
        self._entries: Dict[str, DeploymentEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, key: str, deployment: DeploymentConfig, tags: Iterable[str] = ()) -> None:
        key = (key or "").strip()
        if not key:
            raise ValueError("deployment identity must not be blank")
        if key in self._entries:
            raise ValueError(f"duplicate deployment for {key!r}")
        self._entries[key] = DeploymentEntry(deployment=deployment, tags=tuple(tags))

    def lookup(self, key: str | None) -> Optional[DeploymentEntry]:
        if not key:
            return None
        entry = self._entries.get(key)
        if entry is None or entry.deployment.disabled:
            return None
        return entry

    def match(self, key: str | None, tag: str | None) -> Optional[DeploymentConfig]:
        entry = self.lookup(key)
        if entry is None or not tag_matches(entry.tags, tag):
            return None
        return entry.deployment


@dataclass
class HandlerRegistry:
    handlers: Dict[str, HookHandler] = field(default_factory=dict)
    _frozen: bool = field(default=False, init=False, repr=False)

    @classmethod
    def default(cls, callback_timeout: float | None = None) -> "HandlerRegistry":
        from .dockerhub import DockerHubHandler

        registry = cls()
        registry.register(DockerHubHandler(timeout=callback_timeout))
        return registry

    def register(self, handler: HookHandler) -> None:
        if handler is None:
            raise ValueError("programming error: handler is empty")
        if self._frozen:
            raise RuntimeError("handler registry is read-only once deployments are registered")
        self.handlers[handler.type] = handler

    def get(self, handler_type: str) -> HookHandler | None:
        return self.handlers.get(handler_type)

    def types(self) -> list[str]:
        return sorted(self.handlers)

    def register_deployments(self, config: ServerConfig) -> ServerConfig:
        """Validates every deployment, disabling the broken ones, and freezes the registry.

        Raises ConfigError when no usable deployment is left.
        """
        for deployment in config.deployments:
            self._init_or_disable(deployment)
        self._frozen = True
        if config.is_empty():
            raise ConfigError("all configurations are invalid or empty config")
        return config

    def _init_or_disable(self, deployment: DeploymentConfig) -> None:
        if deployment.disabled:
            return

        reason = self._validate(deployment)
        if reason is not None:
            deployment.disabled = True
            logger.warning("deployment %r disabled: %s", deployment.type, reason)

    def _validate(self, deployment: DeploymentConfig) -> str | None:
        work_dir = Path(deployment.work_dir) if deployment.work_dir else None
        if work_dir is None or not work_dir.exists():
            return f"workdir {deployment.work_dir!r} does not exist"
        if not work_dir.is_dir():
            return f"{deployment.work_dir} is not a directory"
        if deployment.payload is None:
            return f"no payload for deployment in {deployment.work_dir!r}"

        handler = self.get(deployment.type)
        if handler is None:
            return f"unregistered deployment type {deployment.type!r} for workdir {deployment.work_dir!r}"
        try:
            handler.register(deployment)
        except Exception as exc:  # noqa: BLE001
            return f"unable to register in workdir {deployment.work_dir!r}: {exc}"
        return None
