"""FastAPI and uvicorn helpers shared by fieldguard HTTP surfaces."""

from __future__ import annotations

import json
from typing import Any, Sequence

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .errors import InvalidJsonBodyError, MissingHeaderError

_DEFAULT_CORS_HEADERS = ("authorization", "x-client-info", "apikey", "content-type")


def create_app(
    *,
    title: str = "fieldguard",
    version: str = "0.0.0",
    cors_allow_origins: Sequence[str] = (),
    cors_allow_headers: Sequence[str] = _DEFAULT_CORS_HEADERS,
) -> FastAPI:
    """Create a FastAPI app with project defaults and optional CORS."""
    app = FastAPI(title=title, version=version)
    if cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_allow_origins),
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=list(cors_allow_headers),
        )
    return app


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run one FastAPI app through uvicorn."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def get_header(
    request: Request,
    name: str,
    *,
    required: bool = True,
    strip: bool = True,
) -> str | None:
    """Fetch one header value and optionally enforce presence."""
    value = request.headers.get(name)
    if value is None:
        if required:
            raise MissingHeaderError(
                message=f"Missing required header: {name}",
                header_name=name,
            )
        return None

    if strip:
        value = value.strip()
    if required and value == "":
        raise MissingHeaderError(
            message=f"Missing required header: {name}",
            header_name=name,
        )
    return value


async def read_json_body(request: Request) -> Any:
    """Read and decode one request body as JSON."""
    body = await request.body()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidJsonBodyError(message="Body is not valid JSON") from exc
