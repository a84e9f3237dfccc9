"""
xdportal - asyncio client for XDG desktop portal requests.
"""

__version__ = "0.1.0"
__logo__ = "🧩"

from xdportal.portal.client import PortalClient
from xdportal.portal.dynamic_launcher import (
    DynamicLauncherProxy,
    LauncherIcon,
    LauncherType,
    PrepareInstallOptions,
    PrepareInstallResponse,
)
from xdportal.portal.icon import Icon, IconKind, IconType
from xdportal.portal.request import Request, RequestState, ResponseStatus

__all__ = [
    "__version__",
    "PortalClient",
    "DynamicLauncherProxy",
    "LauncherIcon",
    "LauncherType",
    "PrepareInstallOptions",
    "PrepareInstallResponse",
    "Icon",
    "IconKind",
    "IconType",
    "Request",
    "RequestState",
    "ResponseStatus",
]
