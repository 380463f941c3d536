"""
Shared FastAPI dependencies.

The app lifespan registers the process-wide ServiceFactory with
set_factory(); routes reach it through get_factory() / get_settings().
"""

from __future__ import annotations

from fastapi import Depends

from factory import ServiceFactory
from infrastructure.config import Settings

_factory: ServiceFactory | None = None


def set_factory(factory: ServiceFactory) -> None:
    global _factory
    _factory = factory


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized; is the app lifespan running?")
    return _factory


def get_settings(factory: ServiceFactory = Depends(get_factory)) -> Settings:
    return factory.config
