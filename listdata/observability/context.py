"""
Request id carried through a contextvar so log lines from one API call, CLI
command or cron run can be grouped.
"""

import contextvars
import uuid

_current_request: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "listdata_request_id", default=None
)


def get_request_id() -> str | None:
    return _current_request.get()


def set_request_id(request_id: str | None) -> contextvars.Token:
    """Bind *request_id*; pass the returned token to reset it."""
    return _current_request.set(request_id)


def generate_request_id() -> str:
    return "req-" + uuid.uuid4().hex[:16]


class RequestContext:
    """
    Context manager binding one request id.

        with RequestContext() as ctx:
            sync_list_cache_from_github(list_id, context)
            # every log record inside carries ctx.request_id
    """

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id or generate_request_id()
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "RequestContext":
        self._token = set_request_id(self.request_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is None:
            return
        _current_request.reset(self._token)
        self._token = None
