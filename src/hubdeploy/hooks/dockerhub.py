"""Docker Hub push webhook handler."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from hubdeploy.config import DeploymentConfig
from hubdeploy.models import CallbackData, Job
from hubdeploy.settings import settings
from hubdeploy.time_utils import from_unix

from .base import BadWebhookPayload, HookHandler, NoMatchingDeployment
from .registry import DeploymentTable

logger = logging.getLogger(__name__)


class _WebhookModel(BaseModel):
    """Treats JSON nulls as absent, so they fall back to the field defaults."""

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class PushData(_WebhookModel):
    tag: str = ""
    pushed_at: float = 0
    pusher: str = ""
    images: List[str] = Field(default_factory=list)


class Repository(_WebhookModel):
    repo_name: str = ""
    name: str = ""
    namespace: str = ""
    owner: str = ""
    repo_url: str = ""
    status: str = ""
    is_private: bool = False


class DockerHubWebhook(_WebhookModel):
    """Body of a Docker Hub repository push notification."""

    callback_url: str = ""
    push_data: PushData = Field(default_factory=PushData)
    repository: Repository = Field(default_factory=Repository)


class DockerHubPayload(BaseModel):
    """The ``payload`` section of a dockerhub deployment."""

    model_config = ConfigDict(extra="forbid")

    repo_name: str = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list)


class DockerHubCallback(BaseModel):
    state: str
    description: str
    context: str
    target_url: str = ""


class DockerHubHandler(HookHandler):
    def __init__(self, timeout: Optional[float] = None, client: Optional[httpx.Client] = None):
        self.timeout = timeout if timeout is not None else settings.callback_timeout_seconds
        self.client = client
        self.deployments = DeploymentTable()

    @property
    def type(self) -> str:
        return "dockerhub"

    def register(self, deployment: DeploymentConfig) -> None:
        if deployment.type != self.type:
            raise ValueError(f"{deployment.type!r} is not a {self.type} deployment")
        payload = DockerHubPayload.model_validate(deployment.payload)
        self.deployments.add(payload.repo_name.strip(), deployment, payload.tags)

    def handle(self, body: bytes) -> Job:
        try:
            webhook = DockerHubWebhook.model_validate_json(body)
        except ValidationError as exc:
            logger.info("invalid body: %s", body.decode("utf-8", errors="replace"))
            raise BadWebhookPayload() from exc

        repo_name = webhook.repository.repo_name
        tag = webhook.push_data.tag
        deployment = self.deployments.match(repo_name, tag)
        if deployment is None:
            if self.deployments.lookup(repo_name) is None:
                logger.info("no deployment for repository: %r", repo_name)
                raise NoMatchingDeployment("no deployment for this repository")
            logger.info("[%s] no deployment for tag: %r", repo_name, tag)
            raise NoMatchingDeployment("no deployment for this tag")

        logger.info(
            "accepted %s:%s for %s (image pushed at %s)",
            repo_name,
            tag,
            deployment.work_dir,
            from_unix(webhook.push_data.pushed_at),
        )
        return Job(event=webhook, deployment=deployment, callback_url=webhook.callback_url)

    def callback(self, data: CallbackData) -> None:
        if not data.callback_url:
            logger.info("%s> no callback url, not reporting", data.id)
            return

        body = DockerHubCallback(
            state=data.state,
            description=f"[{data.id}]: {data.description}",
            context=data.context,
            target_url=data.results_url,
        ).model_dump()
        logger.info("%s> posting results to %s", data.id, data.callback_url)
        logger.debug("%s> data: %s", data.id, body)
        try:
            response = self._post(data.callback_url, body)
        except httpx.HTTPError as exc:
            logger.error("%s> failed to send callback: %s", data.id, exc)
            return
        if response.status_code != 200:
            logger.error("%s> failed to send callback: invalid status code: %d", data.id, response.status_code)
            return
        logger.info("%s> post ok", data.id)
        logger.debug("%s> body: %s", data.id, response.text)

    def _post(self, url: str, body: dict) -> httpx.Response:
        if self.client is not None:
            return self.client.post(url, json=body, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(url, json=body)
