from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

import httpx

from proxy_cron._headers import Headers

# 1 MiB
DEFAULT_MAX_BODY_SIZE = 1048576
DEFAULT_FETCH_TIMEOUT = 10.0


@dataclass
class ProxyOptions:
    """
    Configuration options for the proxy engine.

    Attributes:
    ----------
    max_body_size : int
        Maximum number of upstream body bytes read and stored per fetch.
        Anything beyond the limit is discarded without an error.

        Default: 1048576 (1 MiB)

    fetch_timeout : float
        Timeout in seconds for the upstream HTTP client. It applies to
        connecting, reading, writing and waiting for a pooled connection,
        independently of any timeout the hosting server enforces.

        Default: 10.0
    """

    max_body_size: int = DEFAULT_MAX_BODY_SIZE
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT

    def __post_init__(self) -> None:
        if self.max_body_size < 0:
            raise ValueError("max_body_size must not be negative")
        if self.fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")


@dataclass(frozen=True)
class CacheEntry:
    """The last successfully fetched representation of one upstream target."""

    body: bytes
    headers: Headers = field(default_factory=Headers)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass
class ProxyRequest:
    method: str
    params: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_query_string(cls, method: str, query_string: str | bytes) -> ProxyRequest:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin1")
        query = httpx.QueryParams(query_string)
        # first value wins for repeated parameters
        return cls(method=method, params={key: query[key] for key in query.keys()})

    @property
    def endpoint(self) -> str:
        return self.params.get("endpoint", "")

    @property
    def crontab(self) -> str:
        return self.params.get("crontab", "")


@dataclass
class ProxyResponse:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    from_cache: bool = False

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def plain_text_response(status_code: int, message: str) -> ProxyResponse:
    return ProxyResponse(
        status_code=status_code,
        headers=Headers(
            {
                "Content-Type": "text/plain; charset=utf-8",
                "X-Content-Type-Options": "nosniff",
            }
        ),
        body=message.encode("utf-8"),
    )
