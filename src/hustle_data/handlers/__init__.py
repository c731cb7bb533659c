"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .cache_handler import CacheHandler
from .errors import http_error
from .post_handler import PostHandler
from .review_handler import ReviewHandler
from .user_handler import UserHandler

__all__ = [
    "CacheHandler",
    "PostHandler",
    "ReviewHandler",
    "UserHandler",
    "http_error",
]
