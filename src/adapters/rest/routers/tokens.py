"""Ephemeral realtime credentials for browser voice clients."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from factory import ServiceFactory
from adapters.rest.dependencies import get_factory, get_settings
from adapters.rest.schemas import TokenOut
from domain.exceptions import SessionConnectionError
from infrastructure.config import Settings

router = APIRouter(tags=["session"])
logger = logging.getLogger(__name__)


@router.post("/session/token", response_model=TokenOut)
async def create_session_token(
    factory: ServiceFactory = Depends(get_factory),
    settings: Settings = Depends(get_settings),
):
    """Mint a short-lived client secret for the realtime API.

    The browser opens its realtime connection with this secret, so the
    long-lived OPENAI_API_KEY never leaves the server.
    """
    try:
        secret = await factory.create_realtime_issuer().issue()
    except SessionConnectionError as e:
        logger.warning("Realtime token request failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return TokenOut(client_secret=secret, model=settings.realtime_model)
