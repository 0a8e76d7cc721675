"""
Logging and request ids for the list API, CLI and cron sync.

    from listdata.observability import RequestContext, configure_logging

    configure_logging("INFO")
    with RequestContext():
        service.refresh(list_id)
"""

from .context import RequestContext, generate_request_id, get_request_id, set_request_id
from .logging import HumanFormatter, JSONFormatter, configure_logging
from .middleware import CorrelationIdMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "HumanFormatter",
    "JSONFormatter",
    "RequestContext",
    "configure_logging",
    "generate_request_id",
    "get_request_id",
    "set_request_id",
]
