"""Webhook handler protocol and request rejection errors."""

from __future__ import annotations

from abc import ABC, abstractmethod

from hubdeploy.config import DeploymentConfig
from hubdeploy.models import CallbackData, Job


class WebhookRejected(Exception):
    """The inbound webhook was not turned into a job."""

    status_code = 400
    detail = "Bad Request"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class BadWebhookPayload(WebhookRejected):
    status_code = 400
    detail = "Bad Request"


class NoMatchingDeployment(WebhookRejected):
    status_code = 406
    detail = "no deployment for this repository"


class HookHandler(ABC):
    """Pluggable handler for one origin system's webhook protocol."""

    @property
    @abstractmethod
    def type(self) -> str:
        """Deployment type served by this handler; also its webhook path segment."""

    @abstractmethod
    def register(self, deployment: DeploymentConfig) -> None:
        """Accept a deployment of this handler's type or raise ValueError."""

    @abstractmethod
    def handle(self, body: bytes) -> Job:
        """Decode a webhook body and resolve it to a job, or raise WebhookRejected."""

    @abstractmethod
    def callback(self, data: CallbackData) -> None:
        """Report the deployment outcome to the origin system. Must not raise."""
