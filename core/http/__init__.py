"""
HTTP Client Module

Synchronous HTTP client used for settlement JSON-RPC.
"""

from .client import HttpClient, HttpError, HttpResponse

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
]
