"""
infrastructure.llm.credentials - CredentialIssuerPort implementations.

ProviderKeyIssuer hands the configured provider key to the in-process chat
transport. RealtimeSessionIssuer mints an ephemeral client secret for
browser voice clients that talk to the realtime API directly.
"""

from __future__ import annotations

import logging

from domain.exceptions import SessionConnectionError

logger = logging.getLogger(__name__)


class ProviderKeyIssuer:
    """Issues the long-lived provider key (empty for local providers)."""

    def __init__(self, api_key: str = "", *, required: bool = True):
        self._api_key = api_key
        self._required = required

    async def issue(self) -> str:
        if self._required and not self._api_key:
            raise SessionConnectionError("No provider API key is configured")
        return self._api_key


class RealtimeSessionIssuer:
    """Mint ephemeral realtime client secrets with the OpenAI SDK.

    One issuer serves every token request; the AsyncOpenAI client is built
    on first use and released by aclose().
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini-realtime-preview", client=None):
        self._api_key = api_key
        self._model = model
        self._client = client

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def issue(self) -> str:
        try:
            session = await self._get_client().beta.realtime.sessions.create(model=self._model)
            secret = session.client_secret.value
        except Exception as e:
            logger.error("Realtime credential request failed: %s", e)
            raise SessionConnectionError(f"Could not issue realtime credential: {e}") from e

        if not secret:
            raise SessionConnectionError("Realtime API returned an empty client secret")
        logger.info("Issued realtime client secret (model=%s)", self._model)
        return secret

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()
