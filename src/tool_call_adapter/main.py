"""Main FastAPI application entry point."""

import argparse
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI, Request
from pydantic import ValidationError
from starlette.types import Receive, Scope, Send

from tool_call_adapter import __version__
from tool_call_adapter.config import Settings, get_settings
from tool_call_adapter.core import (
    Diagnostics,
    StructlogDiagnostics,
    create_grammar_provider,
    create_interceptor,
    create_proxy,
)
from tool_call_adapter.metrics import MetricsExporter
from tool_call_adapter.utils import configure_logging, get_logger

logger = get_logger(__name__)


async def proxy_endpoint(scope: Scope, receive: Receive, send: Send) -> None:
    """Forward any request to the upstream, whatever its method."""
    request = Request(scope, receive)
    response = await request.app.state.proxy.forward(request)
    await response(scope, receive, send)


def create_app(
    settings: Settings | None = None,
    config_path: str | Path | None = None,
    client: httpx.AsyncClient | None = None,
    diagnostics: Diagnostics | None = None,
) -> FastAPI:
    """Build the proxy application.

    Every path and method lands on a single mounted endpoint, so no local
    endpoint shadows an upstream one.

    Args:
        settings: Application settings, loaded from the environment if omitted
        config_path: Grammar file from the command line, wins over settings
        client: HTTP client for upstream calls (tests pass a mock transport)
        diagnostics: Diagnostics collaborator shared by all components

    Returns:
        Configured application
    """
    settings = settings or get_settings()
    diagnostics = diagnostics or StructlogDiagnostics()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        grammar_provider = create_grammar_provider(
            config_path,
            settings.grammar_file_path,
            diagnostics,
        )
        interceptor = create_interceptor(grammar_provider, diagnostics)
        app.state.proxy = create_proxy(settings, interceptor, client, diagnostics)

        logger.info(
            "startup",
            version=__version__,
            target_base_url=settings.target_base_url,
            host=settings.host,
            port=settings.port,
            grammar_file=str(grammar_provider.path),
        )

        yield

        await app.state.proxy.aclose()
        logger.info("shutdown")

    app = FastAPI(
        title="Tool Call Adapter",
        description="Reverse proxy that adds a GBNF grammar to chat completion requests",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # A mount matches every method, including extension methods like PROPFIND
    app.mount("/", proxy_endpoint)

    return app


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(
        description="Grammar-injecting proxy for OpenAI-compatible chat completions"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to grammar file (.gbnf), overrides GRAMMAR_FILE_PATH",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: TOOL_CALL_ADAPTER_LOG_LEVEL or info)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    import uvicorn

    args = parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging("info")
        logger.error("startup.invalid_settings", error=str(e))
        sys.exit(1)

    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    try:
        if settings.metrics_port:
            MetricsExporter.serve(settings.metrics_port, settings.host)
            logger.info("metrics.serving", port=settings.metrics_port)

        uvicorn.run(
            create_app(settings, config_path=args.config),
            host=settings.host,
            port=settings.port,
            log_level=log_level.lower(),
        )
    except OSError as e:
        logger.error("server.failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
