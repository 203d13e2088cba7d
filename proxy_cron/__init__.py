__version__ = "0.1.0"

from proxy_cron._exceptions import (
    CrontabParseError as CrontabParseError,
    FetchError as FetchError,
    ProxyCronError as ProxyCronError,
)
from proxy_cron._headers import Headers as Headers, copy_headers as copy_headers
from proxy_cron._models import (
    CacheEntry as CacheEntry,
    ProxyOptions as ProxyOptions,
    ProxyRequest as ProxyRequest,
    ProxyResponse as ProxyResponse,
)
from proxy_cron._schedule import is_admitted as is_admitted, normalize_crontab as normalize_crontab
from proxy_cron._async._storage import AsyncResponseCache as AsyncResponseCache
from proxy_cron._sync._storage import ResponseCache as ResponseCache
from proxy_cron._async._engine import AsyncProxyEngine as AsyncProxyEngine
from proxy_cron._sync._engine import ProxyEngine as ProxyEngine

__all__ = (
    "__version__",
    ## Schedule gate
    "is_admitted",
    "normalize_crontab",
    ## Models
    "CacheEntry",
    "ProxyOptions",
    "ProxyRequest",
    "ProxyResponse",
    ## Headers
    "Headers",
    "copy_headers",
    ## Storages
    "AsyncResponseCache",
    "ResponseCache",
    # Engines
    "AsyncProxyEngine",
    "ProxyEngine",
    # Errors
    "ProxyCronError",
    "CrontabParseError",
    "FetchError",
)
