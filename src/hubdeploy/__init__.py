"""Webhook-triggered deployment runner."""

from .config import ConfigError, DeploymentConfig, ServerConfig, load_config
from .hooks import HandlerRegistry, HookHandler
from .pipeline import DeploymentPipeline

__all__ = [
    "__version__",
    "ConfigError",
    "DeploymentConfig",
    "ServerConfig",
    "load_config",
    "HandlerRegistry",
    "HookHandler",
    "DeploymentPipeline",
]

__version__ = "0.1.0"
