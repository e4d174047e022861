"""Value objects passed through the deployment pipeline."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from .config import DeploymentConfig

STATE_SUCCESS = "success"
STATE_ERROR = "error"


class DeploymentError(RuntimeError):
    """A deployment command could not be run or exited non-zero."""

    def __init__(self, message: str, output: bytes = b"", returncode: int | None = None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


@dataclass
class Job:
    """A matched webhook event waiting for execution."""

    event: Any
    deployment: DeploymentConfig
    callback_url: str = ""

    @property
    def handler_type(self) -> str:
        return self.deployment.type


@dataclass
class ExecutionResult:
    id: uuid.UUID
    output: bytes
    handler_type: str
    callback_url: str = ""
    error: DeploymentError | None = None


@dataclass
class CallbackData:
    """What a handler needs to report a finished deployment back to its origin."""

    id: uuid.UUID
    callback_url: str
    description: str
    context: str
    results_url: str = ""
    error: Exception | None = None

    @property
    def state(self) -> str:
        return STATE_ERROR if self.error is not None else STATE_SUCCESS
