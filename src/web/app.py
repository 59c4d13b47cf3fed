"""
FastAPI application factory for the desk monitor status API.

Routes:
- /api/* -> read-only REST API over the live monitor
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import api


def create_app() -> FastAPI:
    """Create the FastAPI app and wire routes."""
    app = FastAPI(
        title="Desk Monitor",
        version="0.1.0",
        description="Webcam presence and session monitor",
    )

    # CORS for a locally served dashboard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")
    return app
