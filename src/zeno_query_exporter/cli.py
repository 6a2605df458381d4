"""Command line entry point: load jobs, build the query client, serve HTTP."""

import argparse
import importlib
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import uvicorn

from zeno_query_exporter.adapters.config import load_config, load_jobs_dir
from zeno_query_exporter.adapters.frameworks.asgi import ASGIApp, create_asgi_app
from zeno_query_exporter.adapters.logging import configure_logging
from zeno_query_exporter.core.errors import ConfigError
from zeno_query_exporter.core.models import ExporterConfig
from zeno_query_exporter.core.ports import QueryClientPort

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., QueryClientPort]


@dataclass(frozen=True)
class Settings:
    """Process settings collected from flags and environment."""

    zeno_addr: str
    password: str
    addr: str
    client_factory: str
    config: str = "config.yml"
    jobs_dir: str | None = None
    path: str = "/metrics"
    streaming: bool = False
    dedupe_preamble: bool = False
    log_level: str = "INFO"

    @property
    def host(self) -> str:
        host, _, _ = self.addr.rpartition(":")
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        return int(self.addr.rpartition(":")[2])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zeno-query-exporter",
        description="Expose ZenoDB query results as Prometheus metrics.",
    )
    parser.add_argument(
        "--config", default="config.yml", help="The path of the config file"
    )
    parser.add_argument(
        "--jobs-dir",
        help="Load one job per YAML file from this directory instead of --config",
    )
    parser.add_argument(
        "--zeno-addr",
        default=os.environ.get("ZENO_ADDR", ""),
        help="The ZenoDB address to which to connect",
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("ZENO_PASSWORD", ""),
        help="The password used to authenticate against ZenoDB server",
    )
    parser.add_argument(
        "--addr",
        default=os.environ.get("ZENO_EXPORTER_ADDR", ""),
        help="The address (host:port) the HTTP service listens on",
    )
    parser.add_argument(
        "--path", default="/metrics", help="The HTTP path to export the metrics"
    )
    parser.add_argument(
        "--client-factory",
        default=os.environ.get("ZENO_CLIENT_FACTORY", ""),
        help="module:callable returning a query client, called with addr and password",
    )
    parser.add_argument(
        "--streaming",
        action="store_true",
        help="Stream samples as they are produced instead of buffering the response",
    )
    parser.add_argument(
        "--dedupe-preamble",
        action="store_true",
        help="Write HELP/TYPE once per metric per response",
    )
    parser.add_argument("--log-level", default="INFO", help="Log level")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command line flags into Settings, exiting on missing values."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    for flag, value in (
        ("zeno-addr", args.zeno_addr),
        ("password", args.password),
        ("addr", args.addr),
        ("client-factory", args.client_factory),
    ):
        if not value:
            parser.error(f"Missing {flag}")
    if not args.addr.rpartition(":")[2].isdigit():
        parser.error(f"Invalid addr {args.addr!r}, expected host:port")
    return Settings(
        zeno_addr=args.zeno_addr,
        password=args.password,
        addr=args.addr,
        client_factory=args.client_factory,
        config=args.config,
        jobs_dir=args.jobs_dir,
        path=args.path,
        streaming=args.streaming,
        dedupe_preamble=args.dedupe_preamble,
        log_level=args.log_level,
    )


def load_client_factory(target: str) -> ClientFactory:
    """Import a ``module:callable`` client factory.

    Raises:
        ConfigError: The target is malformed or does not name a callable.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"invalid client factory {target!r}, expected module:callable")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigError(f"cannot load client factory {target!r}: {e}") from e
    if not callable(factory):
        raise ConfigError(f"client factory {target!r} is not callable")
    return factory


def load_jobs(settings: Settings) -> ExporterConfig:
    """Load the job table using the layout selected by the settings."""
    if settings.jobs_dir:
        return load_jobs_dir(settings.jobs_dir)
    return load_config(settings.config)


def build_app(settings: Settings) -> ASGIApp:
    """Load jobs, create the query client and build the ASGI app."""
    config = load_jobs(settings)
    factory = load_client_factory(settings.client_factory)
    client = factory(addr=settings.zeno_addr, password=settings.password)
    return create_asgi_app(
        config,
        client,
        path=settings.path,
        streaming=settings.streaming,
        dedupe_preamble=settings.dedupe_preamble,
    )


def main(argv: Sequence[str] | None = None) -> None:
    settings = parse_args(argv)
    configure_logging(settings.log_level)
    try:
        app = build_app(settings)
    except ConfigError as e:
        logger.error("Startup failed: %s", e.detail)
        raise SystemExit(1) from e
    logger.info(
        "Starting Zeno Query Exporter at %s",
        settings.addr,
        extra={"path": settings.path},
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        lifespan="off",
        log_config=None,
    )
