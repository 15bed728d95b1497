"""Request-scoped middleware for API requests."""

import logging
import re
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Ids forwarded by a proxy are kept only if they look like ids
_FORWARDED_ID = re.compile(r"^[A-Za-z0-9_-]{8,64}$")

# Public invoice tokens are bearer credentials and never reach the logs
_PUBLIC_TOKEN_PATH = re.compile(r"^/public/invoices/[^/]+")


def loggable_path(path: str) -> str:
    return _PUBLIC_TOKEN_PATH.sub("/public/invoices/{token}", path)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id and logs its outcome.

    The id comes from an upstream X-Request-ID when one is well formed,
    otherwise a fresh UUID. It is exposed as request.state.request_id for
    the response envelope and echoed in the response header.
    """

    async def dispatch(self, request: Request, call_next):
        forwarded = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = forwarded if _FORWARDED_ID.match(forwarded) else str(uuid4())
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s -> %s (%.1f ms) [%s]",
            request.method, loggable_path(request.url.path),
            response.status_code, elapsed_ms, request_id,
        )
        return response
