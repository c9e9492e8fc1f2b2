"""Outbound collaborators: HTTP transport and config server discovery."""

from .http_client import AiohttpClient, HttpClient, HttpResponse
from .service_locator import (
    ConfigServiceLocator,
    MetaServiceLocator,
    StaticServiceLocator,
)

__all__ = [
    "AiohttpClient",
    "ConfigServiceLocator",
    "HttpClient",
    "HttpResponse",
    "MetaServiceLocator",
    "StaticServiceLocator",
]
