from .base import BadWebhookPayload, HookHandler, NoMatchingDeployment, WebhookRejected
from .dockerhub import DockerHubHandler
from .registry import DeploymentTable, HandlerRegistry, tag_matches

__all__ = [
    "HookHandler",
    "WebhookRejected",
    "BadWebhookPayload",
    "NoMatchingDeployment",
    "DockerHubHandler",
    "DeploymentTable",
    "HandlerRegistry",
    "tag_matches",
]
