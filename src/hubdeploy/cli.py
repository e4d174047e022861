"""hubdeploy command line entry point."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from hubdeploy.api import create_app
from hubdeploy.config import ConfigError, ServerConfig, load_config
from hubdeploy.hooks import HandlerRegistry
from hubdeploy.pipeline import DeploymentPipeline
from hubdeploy.results import ResultsStore
from hubdeploy.settings import Settings, settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LOG_FILE = "hubdeploy.log"


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hubdeploy", description="Webhook-triggered deployment runner.")
    parser.add_argument("-p", "--port", type=int, default=defaults.port, help="http server port")
    parser.add_argument("--host", default=defaults.host, help="host or ip to bind to")
    parser.add_argument("--prefix", default=defaults.prefix, help="api path prefix")
    parser.add_argument("--cert", default=defaults.cert, help="certificate path")
    parser.add_argument("--key", default=defaults.key, help="certificate key")
    parser.add_argument("-c", "--config", default=defaults.config_file, help="config file")
    parser.add_argument("-v", "--verbose", action="store_true", default=defaults.verbose, help="verbose output")
    parser.add_argument(
        "-l",
        "--log",
        default=defaults.log_file,
        help=f"log file, '-' for stderr (default: {DEFAULT_LOG_FILE})",
    )
    return parser


def configure_logging(log_file: str, verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    if log_file == "-":
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT, filename=log_file or DEFAULT_LOG_FILE, filemode="a")


def build_pipeline(
    config: ServerConfig,
    registry: HandlerRegistry,
    queue_size: int | None = None,
) -> tuple[DeploymentPipeline, ResultsStore]:
    """Validates deployments against the registry and wires the pipeline.

    Raises ConfigError when no deployment is usable.
    """
    registry.register_deployments(config)
    results_store = ResultsStore(config.results_dir)
    pipeline = DeploymentPipeline(
        registry,
        results_store,
        server_url=config.server_url,
        queue_size=queue_size,
    )
    return pipeline, results_store


def main(argv: list[str] | None = None) -> None:
    args = build_parser(settings).parse_args(argv)
    configure_logging(args.log, args.verbose)

    try:
        config = load_config(args.config).with_cert(args.cert, args.key)
        registry = HandlerRegistry.default(settings.callback_timeout_seconds)
        pipeline, results_store = build_pipeline(config, registry, settings.job_queue_size)
    except (ConfigError, OSError) as exc:
        logger.critical("%s", exc)
        raise SystemExit(f"hubdeploy: {exc}") from exc

    logger.info("webhook handlers: %s", ", ".join(registry.types()))
    if results_store.enabled:
        logger.info("saving results to %s", results_store.results_dir)

    app = create_app(registry, pipeline, results_store, prefix=args.prefix)
    ssl_options = {}
    if config.tls_enabled:
        logger.debug("TLS enabled")
        ssl_options = {"ssl_certfile": config.cert, "ssl_keyfile": config.key}

    logger.info("listening on %s:%s", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None, **ssl_options)


if __name__ == "__main__":
    main()
