"""API key authentication middleware for the assignment worker.

Endpoints are classified into three tiers:

- **Public**: no auth required (healthz, docs)
- **Read**: requires API key only when `API_READ_AUTH` is on (overview, run history)
- **Admin**: always requires API key (bulk run, reassignment, reconciliation)

Configuration via environment variables:

- `API_KEY`: the shared secret. When unset, all endpoints are open.
- `API_PUBLIC_PREFIXES`: comma-separated path prefixes that never require auth.
  Default: `/healthz,/docs,/redoc,/openapi.json`
- `API_ADMIN_PREFIXES`: comma-separated path prefixes that always require auth.
  Default: `/assignments/run,/assignments/reassign,/assignments/reconcile`
- `API_READ_AUTH`: if `true`, read endpoints also require the API key. Default: `false`.

The key can be sent as `X-API-Key: <key>` or `Authorization: Bearer <key>`.
"""
from __future__ import annotations

import logging
import os
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

_DEFAULT_PUBLIC_PREFIXES = (
    "/healthz",
    "/docs",
    "/redoc",
    "/openapi.json",
)

_DEFAULT_ADMIN_PREFIXES = (
    "/assignments/run",
    "/assignments/reassign",
    "/assignments/reconcile",
)


def _parse_prefixes(env_var: str, defaults: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return defaults
    return tuple(p.strip() for p in raw.split(",") if p.strip())


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Gates admin endpoints (and optionally read endpoints) by API key.

    Inactive when `api_key` is None.
    """

    def __init__(
        self,
        app,
        api_key: str | None = None,
        public_prefixes: tuple[str, ...] | None = None,
        admin_prefixes: tuple[str, ...] | None = None,
        read_auth: bool = False,
    ):
        super().__init__(app)
        self.api_key = api_key
        self.public_prefixes = public_prefixes or _parse_prefixes(
            "API_PUBLIC_PREFIXES", _DEFAULT_PUBLIC_PREFIXES
        )
        self.admin_prefixes = admin_prefixes or _parse_prefixes(
            "API_ADMIN_PREFIXES", _DEFAULT_ADMIN_PREFIXES
        )
        self.read_auth = read_auth

    async def dispatch(self, request: Request, call_next: Callable):
        if not self.api_key:
            return await call_next(request)

        path = request.url.path

        if self._is_public(path):
            return await call_next(request)

        if self._is_admin(path) or self.read_auth:
            if not self._check_key(request):
                return JSONResponse(
                    status_code=401,
                    content={"detail": "API key required"},
                )

        return await call_next(request)

    def _is_public(self, path: str) -> bool:
        return any(path.startswith(p) for p in self.public_prefixes)

    def _is_admin(self, path: str) -> bool:
        return any(path.startswith(p) for p in self.admin_prefixes)

    def _check_key(self, request: Request) -> bool:
        key = request.headers.get("x-api-key")
        if key:
            return key == self.api_key

        auth = request.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            return auth[7:].strip() == self.api_key

        return False


def configure_auth(app) -> None:
    """Read env vars and add API key middleware to a FastAPI app.

    Does nothing if API_KEY is not set.
    """
    api_key = os.getenv("API_KEY", "").strip() or None
    read_auth = os.getenv("API_READ_AUTH", "false").lower() in ("true", "1", "yes")

    if api_key:
        app.add_middleware(
            APIKeyMiddleware,
            api_key=api_key,
            read_auth=read_auth,
        )
        logger.info("API key auth enabled (read_auth=%s)", read_auth)
    else:
        logger.info("API key auth disabled (API_KEY not set)")
