"""hubdeploy FastAPI application."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from hubdeploy.hooks import HandlerRegistry, HookHandler, WebhookRejected
from hubdeploy.pipeline import DeploymentPipeline
from hubdeploy.results import RESULTS_SEGMENT, ResultsStore
from hubdeploy.settings import settings

logger = logging.getLogger(__name__)

# Delay before answering requests for things that do not exist.
STALL_SECONDS = 0.991

GO_AWAY = "get lost"
SHUTTING_DOWN = "shutting down"
NOT_FOUND = "404 page not found"

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def route_path(prefix: str, *parts: str) -> str:
    segments = [segment.strip("/") for segment in (prefix, *parts)]
    return "/" + "/".join(segment for segment in segments if segment)


def create_app(
    registry: HandlerRegistry,
    pipeline: DeploymentPipeline,
    results_store: ResultsStore,
    prefix: str = "/",
    stall_seconds: float = STALL_SECONDS,
    shutdown_timeout: float | None = None,
) -> FastAPI:
    if not registry.handlers:
        raise RuntimeError("no deployment handlers registered")
    close_timeout = settings.shutdown_timeout_seconds if shutdown_timeout is None else shutdown_timeout

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pipeline.start()
        yield
        await run_in_threadpool(pipeline.close, close_timeout)

    app = FastAPI(
        title="hubdeploy",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.monotonic()
        request_id = uuid.uuid4()
        response = await call_next(request)
        client = request.client.host if request.client else "-"
        logger.info(
            "[%s] HTTP %s %s - %d %5dms (%s)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            int((time.monotonic() - started) * 1000),
            client,
        )
        return response

    for handler_type, handler in registry.handlers.items():
        endpoint = _webhook_endpoint(handler, pipeline)
        base = route_path(prefix, "webhooks", handler_type)
        app.add_api_route(base, endpoint, methods=["POST"], include_in_schema=False)
        app.add_api_route(base + "/{tail:path}", endpoint, methods=["POST"], include_in_schema=False)

    @app.get(route_path(prefix, RESULTS_SEGMENT) + "/{name:path}", include_in_schema=False)
    async def get_result(name: str) -> Response:
        file_path = results_store.find(name)
        if file_path is None:
            await asyncio.sleep(stall_seconds)
            return PlainTextResponse(NOT_FOUND, status_code=404)
        try:
            content = await run_in_threadpool(file_path.read_bytes)
        except OSError as exc:
            logger.error("unable to read %s: %s", file_path, exc)
            await asyncio.sleep(stall_seconds)
            return PlainTextResponse(NOT_FOUND, status_code=404)
        return Response(content=content, media_type="text/plain; charset=utf-8")

    @app.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def go_away(path: str) -> Response:
        del path
        await asyncio.sleep(stall_seconds * 2)
        return PlainTextResponse(GO_AWAY, status_code=404)

    return app


def _webhook_endpoint(handler: HookHandler, pipeline: DeploymentPipeline):
    async def receive_webhook(request: Request) -> Response:
        body = await request.body()
        try:
            job = handler.handle(body)
        except WebhookRejected as exc:
            return PlainTextResponse(exc.detail, status_code=exc.status_code)

        # Blocks while the job queue is full.
        try:
            await run_in_threadpool(pipeline.submit, job)
        except RuntimeError:
            logger.warning("rejected %s job, pipeline is closed", handler.type)
            return PlainTextResponse(SHUTTING_DOWN, status_code=503)
        return PlainTextResponse("OK", status_code=200)

    receive_webhook.__name__ = f"receive_{handler.type}_webhook"
    return receive_webhook
