"""Prometheus HTTP request metrics middleware for FastAPI.

Tracks:
- ``http_request_total`` (counter): requests by method, route, status
- ``http_request_duration_seconds`` (histogram): duration by method, route

Paths are labelled with the matched route template (``/api/transactions/{tx_id}``)
so per-transaction URLs do not create one series each.
"""

from __future__ import annotations

import re
import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from collections.abc import Callable

    from prometheus_client import CollectorRegistry
    from starlette.requests import Request
    from starlette.responses import Response

_APP_LABEL = "bridge-relayer"

_LABELS = ("method", "path", "status_code", "app")
_DURATION_LABELS = ("method", "path", "app")


_PARAM_RE = re.compile(r"\{([^}:]+)(?::[^}]*)?\}")


def _route_path(request: Request) -> str:
    """Full route template of the request, prefixes of enclosing routers included.

    Depending on the framework version the matched route carries either
    the full template or only the part below its router, so the prefix is
    recovered from the request path.
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if not template:
        return "unmatched"
    params = request.scope.get("path_params", {})
    rendered = _PARAM_RE.sub(lambda m: str(params.get(m.group(1), m.group(0))), template)
    path = request.url.path
    if rendered != path and path.endswith(rendered):
        return path[: -len(rendered)] + template
    return template


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that records request count and duration."""

    def __init__(self, app: object, *, registry: CollectorRegistry) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._request_count = Counter(
            "http_request_total",
            "Total HTTP requests",
            _LABELS,
            registry=registry,
        )
        self._request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            _DURATION_LABELS,
            registry=registry,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:  # type: ignore[type-arg]
        """Wrap each request with timing and counting."""
        start = time.monotonic()
        response: Response = await call_next(request)
        duration = time.monotonic() - start

        # The route is only resolved once the router has run.
        path = _route_path(request)
        self._request_count.labels(
            method=request.method,
            path=path,
            status_code=str(response.status_code),
            app=_APP_LABEL,
        ).inc()
        self._request_duration.labels(
            method=request.method,
            path=path,
            app=_APP_LABEL,
        ).observe(duration)
        return response
