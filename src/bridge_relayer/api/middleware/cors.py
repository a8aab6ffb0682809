"""CORS middleware configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI

# Idempotency key accepted from browser clients re-posting a transaction.
_EXTRA_HEADERS = ["Idempotency-Key"]


def setup_cors(app: FastAPI, origin: str) -> None:
    """Allow the configured frontend origin(s), comma-separated.

    ``"*"`` allows any origin, without credentials.
    """
    origins = [o.strip() for o in origin.split(",") if o.strip()] or ["*"]
    wildcard = "*" in origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if wildcard else origins,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", *_EXTRA_HEADERS],
    )
