"""Command line entry point: configures logging and serves ``ProxyCronApp`` with uvicorn.

Every option can also be supplied through the environment variable shown in
``--help``.
"""

from __future__ import annotations

import faulthandler
import logging
import signal
import sys
from typing import Optional

import typer
import uvicorn

from proxy_cron import __version__
from proxy_cron._async._engine import AsyncProxyEngine
from proxy_cron._logging import setup_logging
from proxy_cron._models import DEFAULT_FETCH_TIMEOUT, DEFAULT_MAX_BODY_SIZE, ProxyOptions
from proxy_cron.asgi import ProxyCronApp

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="proxy-cron",
    help="HTTP proxy that refreshes upstream responses on a crontab schedule and serves cached copies in between.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"proxy-cron {__version__}")
        raise typer.Exit()


def catch_sigquit() -> None:
    """Dump the stack of every thread to stderr on SIGQUIT."""
    if hasattr(signal, "SIGQUIT") and sys.__stderr__ is not None:
        faulthandler.register(signal.SIGQUIT, file=sys.__stderr__, all_threads=True)


@app.command()
def serve(
    port: int = typer.Option(8080, "--port", envvar="PORT", help="Port to listen on."),
    host: str = typer.Option("0.0.0.0", "--host", envvar="HOST", help="Address to listen on."),
    max_size: int = typer.Option(
        DEFAULT_MAX_BODY_SIZE, "--max-size", envvar="MAX_SIZE", min=0, help="Max upstream body size in bytes."
    ),
    fetch_timeout: float = typer.Option(
        DEFAULT_FETCH_TIMEOUT, "--fetch-timeout", envvar="FETCH_TIMEOUT", help="Upstream client timeout in seconds."
    ),
    idle_timeout: int = typer.Option(
        15, "--idle-timeout", envvar="TIMEOUT_IDLE", min=1, help="Keep-alive idle timeout in seconds."
    ),
    shutdown_timeout: int = typer.Option(
        10,
        "--shutdown-timeout",
        envvar="TIMEOUT_SHUTDOWN",
        min=0,
        help="Seconds to wait for in-flight requests on shutdown.",
    ),
    suppress_headers: bool = typer.Option(
        False, "--suppress-headers", envvar="SUPPRESS_HEADERS", help="Don't add App-Name/Author/App-Version headers."
    ),
    no_colors: bool = typer.Option(False, "--no-colors", envvar="NO_COLORS", help="Disable colorized logging."),
    dbg: bool = typer.Option(False, "--dbg", envvar="DEBUG", help="Debug mode."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Run the proxy server."""
    try:
        options = ProxyOptions(max_body_size=max_size, fetch_timeout=fetch_timeout)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    setup_logging(debug=dbg, colors=not no_colors)
    catch_sigquit()

    logger.debug(
        "options: port=%d host=%s max_size=%d fetch_timeout=%s idle_timeout=%d shutdown_timeout=%d "
        "suppress_headers=%s",
        port,
        host,
        max_size,
        fetch_timeout,
        idle_timeout,
        shutdown_timeout,
        suppress_headers,
    )

    application = ProxyCronApp(AsyncProxyEngine(options), app_info=not suppress_headers)
    logger.info("proxy is running on port %d", port)
    uvicorn.run(
        application,
        host=host,
        port=port,
        lifespan="on",
        log_config=None,
        access_log=False,
        timeout_keep_alive=idle_timeout,
        timeout_graceful_shutdown=shutdown_timeout,
    )


def main() -> None:
    app()
