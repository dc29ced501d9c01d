"""Public shared HTTP server helpers for fieldguard services."""

from .errors import (
    HttpError,
    HttpServerError,
    InvalidBodyError,
    InvalidJsonBodyError,
    MissingHeaderError,
)
from .server import create_app, get_header, read_json_body, run_app

__all__ = [
    "HttpError",
    "HttpServerError",
    "InvalidBodyError",
    "InvalidJsonBodyError",
    "MissingHeaderError",
    "create_app",
    "get_header",
    "read_json_body",
    "run_app",
]
