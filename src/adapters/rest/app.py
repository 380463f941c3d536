"""
FastAPI application - REST and WebSocket adapter for the agent sessions.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 0.0.0.0 --port 8000 --reload

Tests (or embedding code) can call create_app(factory) with a prebuilt
ServiceFactory; the module-level `app` builds its own from the environment.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# uvicorn imports this module by dotted path, so src/ may not be on sys.path yet
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from adapters.rest.dependencies import set_factory
from adapters.rest.routers import agents, sessions_ws, tokens
from factory import ServiceFactory
from infrastructure.config import Settings

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def create_app(factory: Optional[ServiceFactory] = None) -> FastAPI:
    """Build the API. Without a factory, one is created from env at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = factory or ServiceFactory(Settings.from_env())
        await active.initialize()
        set_factory(active)
        logger.info("API ready (initial agent: %s)", active.config.initial_agent)
        yield
        await active.aclose()

    api = FastAPI(
        title="Voice Agents",
        version=__version__,
        description="Multi-agent conversation sessions with handoffs, interviews and memory.",
        lifespan=lifespan,
    )

    # Browser voice clients are served from other origins during development
    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api.include_router(agents.router)
    api.include_router(tokens.router)
    api.include_router(sessions_ws.router)

    @api.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "version": __version__}

    return api


app = create_app()
