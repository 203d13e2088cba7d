from __future__ import annotations

import logging
import types
import typing as tp

import httpx

from proxy_cron._sync._storage import ResponseCache
from proxy_cron._exceptions import CrontabParseError, FetchError
from proxy_cron._headers import Headers, copy_headers, filter_headers
from proxy_cron._models import (
    CacheEntry,
    ProxyOptions,
    ProxyRequest,
    ProxyResponse,
    plain_text_response,
)
from proxy_cron._schedule import is_admitted, normalize_crontab

logger = logging.getLogger(__name__)

__all__ = ("ProxyEngine",)

# Describe the upstream wire message, not the decoded and capped body we keep.
FRAMING_HEADERS = ("Content-Length", "Transfer-Encoding", "Content-Encoding", "Connection")


def _flatten(text: str) -> str:
    return text.replace("\n", " ")


class ProxyEngine:
    """
    Decides per request whether to fetch the upstream or serve the cached copy.

    The decision is taken by the schedule gate: when the next occurrence of the
    request's crontab is at most a minute away the upstream is fetched, the
    result stored and returned; otherwise the last stored response for the
    endpoint is returned.

    This class is independent of any web framework and works only with the
    internal request/response models.

    Args:
        options: Engine options, see ``ProxyOptions``.
        cache: Response store. Defaults to a fresh ``ResponseCache``.
        client: HTTP client used for upstream fetches. When omitted the engine
            creates one with ``options.fetch_timeout`` and closes it in ``close``.
    """

    def __init__(
        self,
        options: ProxyOptions | None = None,
        cache: ResponseCache | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.options = options if options is not None else ProxyOptions()
        self.cache = cache if cache is not None else ResponseCache()
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=self.options.fetch_timeout)

    def handle(self, request: ProxyRequest) -> ProxyResponse:
        if request.method != "GET":
            return plain_text_response(405, "Method not allowed")

        endpoint = request.endpoint
        crontab = normalize_crontab(request.crontab)

        try:
            admitted = is_admitted(crontab)
        except CrontabParseError as e:
            logger.warning("Failed to check if request is allowed: %s", e)
            return plain_text_response(500, str(e))

        if admitted:
            return self._handle_admitted(endpoint)
        return self._handle_not_admitted(endpoint)

    def fetch(self, endpoint: str) -> CacheEntry:
        """
        Fetch ``endpoint`` and return its body (capped at ``max_body_size``) and headers.

        Raises:
            FetchError: On network failures, timeouts, invalid URLs and body
                read or decode failures.
        """
        try:
            with self._client.stream("GET", endpoint) as upstream:
                body = self._read_limited(upstream)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"failed to fetch {endpoint}: {str(e) or type(e).__name__}") from e

        # latin1 maps every byte to one character, so the upstream bytes are sent back unchanged
        raw_headers = [(key.decode("latin1"), value.decode("latin1")) for key, value in upstream.headers.raw]
        headers = filter_headers(Headers(raw_headers), FRAMING_HEADERS)
        return CacheEntry(body=body, headers=headers)

    def _read_limited(self, upstream: httpx.Response) -> bytes:
        limit = self.options.max_body_size
        chunks: tp.List[bytes] = []
        received = 0
        for chunk in upstream.iter_bytes():
            chunk = chunk[: limit - received]
            chunks.append(chunk)
            received += len(chunk)
            if received >= limit:
                break
        return b"".join(chunks)

    def _handle_admitted(self, endpoint: str) -> ProxyResponse:
        try:
            entry = self.fetch(endpoint)
        except FetchError as e:
            logger.warning("Failed to fetch upstream: %s", e)
            return plain_text_response(500, str(e))

        self.cache.put(endpoint, entry)

        # the upstream status is not passed through, a successful fetch is always a 200
        response = ProxyResponse(status_code=200, body=entry.body)
        copy_headers(response.headers, entry.headers)
        logger.debug("Non-cached response from %s: %s", endpoint, _flatten(entry.text))
        return response

    def _handle_not_admitted(self, endpoint: str) -> ProxyResponse:
        entry = self.cache.get(endpoint)
        if entry is None:
            logger.debug("No cached response for %s", endpoint)
            return plain_text_response(404, "No cached response available")

        response = ProxyResponse(status_code=200, body=entry.body, from_cache=True)
        copy_headers(response.headers, entry.headers)
        logger.debug("Cached response from %s: %s", endpoint, _flatten(entry.text))
        return response

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ProxyEngine:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        self.close()
