"""
DateMeDoc Backend — Request ID Middleware
===========================================

What:  Gives every request a short correlation ID and echoes it back in the
       X-Request-ID response header.
How:   A client-supplied X-Request-ID is reused when it is at most 64
       characters of [A-Za-z0-9._-]; otherwise the first 8 chars of a
       uuid4. The ID lives in a ContextVar so loggers and exception
       handlers can read it without access to the request.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_CLIENT_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _request_id(header: str) -> str:
    if header and _CLIENT_ID.match(header):
        return header
    return str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = _request_id(request.headers.get("X-Request-ID", ""))
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
