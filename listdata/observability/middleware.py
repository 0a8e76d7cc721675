"""
ASGI middleware binding a request id to every HTTP request of the list API.
"""

import logging

from .context import RequestContext, generate_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = b"x-request-id"


def _incoming_request_id(scope) -> str | None:
    raw = dict(scope.get("headers") or []).get(REQUEST_ID_HEADER)
    if raw is None:
        return None
    try:
        return raw.decode("utf-8") or None
    except UnicodeDecodeError:
        logger.warning("Ignoring undecodable X-Request-ID header")
        return None


class CorrelationIdMiddleware:
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or generate_request_id()
        header = (REQUEST_ID_HEADER, request_id.encode("utf-8"))

        async def send_with_id(message):
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), header]
            await send(message)

        with RequestContext(request_id=request_id):
            await self.app(scope, receive, send_with_id)
