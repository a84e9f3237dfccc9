"""Portal request machinery and interface facades."""

from xdportal.portal.client import PortalClient
from xdportal.portal.proxy import PortalProxy
from xdportal.portal.request import Request, RequestState, ResponseStatus
from xdportal.portal.token import new_token
from xdportal.portal.tracker import RequestTracker

__all__ = [
    "PortalClient",
    "PortalProxy",
    "Request",
    "RequestState",
    "RequestTracker",
    "ResponseStatus",
    "new_token",
]
