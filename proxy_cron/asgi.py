from __future__ import annotations

import logging
import time
import typing as t

from proxy_cron import __version__
from proxy_cron._async._engine import AsyncProxyEngine
from proxy_cron._headers import Headers, copy_headers
from proxy_cron._models import ProxyRequest, ProxyResponse, plain_text_response

# Configure logger for this module
logger = logging.getLogger(__name__)

APP_NAME = "proxy-cron"
APP_AUTHOR = "umputun"
PING_PATH = "/ping"


class _ASGIScope(t.TypedDict, total=False):
    """ASGI HTTP scope type."""

    type: str
    asgi: dict[str, str]
    http_version: str
    method: str
    scheme: str
    path: str
    query_string: bytes
    root_path: str
    headers: list[tuple[bytes, bytes]]
    server: tuple[str, int | None] | None
    client: tuple[str, int] | None
    state: dict[str, t.Any]
    extensions: dict[str, t.Any]


_Scope = _ASGIScope
_Receive = t.Callable[[], t.Awaitable[dict[str, t.Any]]]
_Send = t.Callable[[dict[str, t.Any]], t.Awaitable[None]]


class ProxyCronApp:
    """
    ASGI application serving the schedule-gated proxy.

    Every HTTP request except the health check is handed to the engine, which
    reads the ``endpoint`` and ``crontab`` query parameters. On top of the
    engine the application provides what a small web service needs around it:

    - ``GET`` on any path ending in ``/ping`` (case-insensitive) answers ``pong``
      without touching the engine.
    - ``App-Name``, ``Author`` and ``App-Version`` headers are set on every response before
      the engine's headers are appended to them.
    - Unexpected errors are logged and answered with a 500.
    - One access log line per request.
    - The engine is closed on lifespan shutdown.

    Args:
        engine: The proxy engine. Defaults to an ``AsyncProxyEngine`` with default options.
        app_info: Whether to add the ``App-Name``/``Author``/``App-Version`` headers.

    Example:
        ```python
        import uvicorn
        from proxy_cron import AsyncProxyEngine, ProxyOptions
        from proxy_cron.asgi import ProxyCronApp

        app = ProxyCronApp(AsyncProxyEngine(ProxyOptions(max_body_size=65536)))
        uvicorn.run(app, port=8080)
        ```
    """

    def __init__(
        self,
        engine: AsyncProxyEngine | None = None,
        app_info: bool = True,
    ) -> None:
        self.engine = engine if engine is not None else AsyncProxyEngine()
        self.app_info = app_info

        logger.debug(
            "Initialized ProxyCronApp with max_body_size=%d, app_info=%s",
            self.engine.options.max_body_size,
            app_info,
        )

    async def __call__(self, scope: _Scope, receive: _Receive, send: _Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            logger.debug("Skipping non-HTTP request: type=%s", scope["type"])
            return

        started = time.perf_counter()
        method = scope.get("method", "GET")
        path = scope.get("path", "/")

        if method == "GET" and path.lower().endswith(PING_PATH):
            response = ProxyResponse(
                status_code=200,
                headers=Headers({"Content-Type": "text/plain"}),
                body=b"pong",
            )
        else:
            request = ProxyRequest.from_query_string(method, scope.get("query_string", b""))
            try:
                response = await self.engine.handle(request)
            except Exception as e:
                logger.error(
                    "Error processing request: method=%s path=%s error=%s",
                    method,
                    path,
                    str(e),
                    exc_info=True,
                )
                response = plain_text_response(500, "Internal Server Error")

        await self._send_response(response, send)

        logger.info(
            "%s %s %d cached=%s %.2fms",
            method,
            path,
            response.status_code,
            response.from_cache,
            (time.perf_counter() - started) * 1000,
        )

    def _response_headers(self, response: ProxyResponse) -> Headers:
        headers = Headers()
        if self.app_info:
            headers["App-Name"] = APP_NAME
            headers["Author"] = APP_AUTHOR
            headers["App-Version"] = __version__
        copy_headers(headers, response.headers)
        headers["Content-Length"] = str(len(response.body))
        return headers

    async def _send_response(self, response: ProxyResponse, send: _Send) -> None:
        headers: list[tuple[bytes, bytes]] = [
            (key.encode("latin1"), value.encode("latin1"))
            for key, value in self._response_headers(response).multi_items()
        ]
        await send(
            {
                "type": "http.response.start",
                "status": response.status_code,
                "headers": headers,
            }
        )
        await send(
            {
                "type": "http.response.body",
                "body": response.body,
                "more_body": False,
            }
        )

    async def _handle_lifespan(self, receive: _Receive, send: _Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info("%s %s started", APP_NAME, __version__)
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                logger.info("Closing proxy engine")
                await self.engine.aclose()
                await send({"type": "lifespan.shutdown.complete"})
                return
