"""Process-level hubdeploy settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 9999
    prefix: str = "/"
    config_file: str = "hubdeploy.yml"
    cert: str = ""
    key: str = ""
    log_file: str = ""
    verbose: bool = False
    job_queue_size: int = 100
    callback_timeout_seconds: float = 10.0
    shutdown_timeout_seconds: float = 10.0

    class Config:
        env_file = ".env"
        env_prefix = "HUBDEPLOY_"
        extra = "ignore"


settings = Settings()
