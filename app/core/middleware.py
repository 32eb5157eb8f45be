"""Shared FastAPI middleware."""

from __future__ import annotations

from typing import Callable, Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


NO_STORE_HEADERS = {
    "Cache-Control": "private, no-store, no-cache, max-age=0, must-revalidate",
    "Pragma": "no-cache",
    "CDN-Cache-Control": "no-store",
}


class NoStoreMiddleware(BaseHTTPMiddleware):
    """
    Disable every cache layer for job polling responses.

    Clients poll job status rapidly; a cached response would freeze progress.
    """

    def __init__(self, app, path_prefixes: Iterable[str] = ("/jobs", "/worker")):
        super().__init__(app)
        self.path_prefixes = tuple(path_prefixes)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        response = await call_next(request)
        if request.url.path.startswith(self.path_prefixes):
            for name, value in NO_STORE_HEADERS.items():
                response.headers[name] = value
        return response
