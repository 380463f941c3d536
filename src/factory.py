"""
factory - Composition root for the multi-agent voice orchestrator.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, REST) call this factory to get configured
sessions, parsers and credential issuers.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    factory = ServiceFactory(Settings.from_env())
    await factory.initialize()  # one-time startup

    session = factory.create_session("user-42")
    await session.connect()
    await session.send_user_text("What's the weather in Tokyo?")
    report = await session.close()
"""

from __future__ import annotations

import logging
from typing import Optional

from agent.agents import AgentRegistry
from agent.approvals import ApprovalNotifier
from agent.catalog import build_default_agents
from agent.session import AgentListener, AgentSession, HistoryListener
from application.context import SessionContext
from application.services.memory_sink import MemorySinkService
from domain.ports import MemoryStorePort, RecordParserPort
from infrastructure.config import Settings
from infrastructure.llm.chat_transport import ChatModelTransport
from infrastructure.llm.credentials import ProviderKeyIssuer, RealtimeSessionIssuer
from infrastructure.llm.llm_builder import build_chat_model
from infrastructure.llm.record_parser import LLMRecordParser
from infrastructure.memory.mem0_store import Mem0MemoryStore
from infrastructure.parsing.field_parser import FieldMappingParser
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.memory_repo import SQLiteMemoryStore
from infrastructure.persistence.migrations import run_migrations

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Composition root that wires all dependencies together.

    The agent registry, record parser and memory store are shared by every
    session; transports and contexts are created per session.
    """

    def __init__(self, config: Settings):
        config.validate()
        self._config = config
        self._connection: Optional[AsyncSQLiteConnection] = None
        if config.memory_backend == "sqlite":
            self._connection = AsyncSQLiteConnection(config.memory_db_path)

        self._parser = self._build_parser()
        self._agents = build_default_agents(
            self._parser,
            strict_interviews=config.interview_strict,
            approval_required_tools=config.approval_required_tools,
        )
        self._memory_store = self._build_memory_store()
        self._realtime_issuer: Optional[RealtimeSessionIssuer] = None

    @property
    def config(self) -> Settings:
        return self._config

    @property
    def agents(self) -> AgentRegistry:
        return self._agents

    @property
    def parser(self) -> RecordParserPort:
        return self._parser

    async def initialize(self) -> None:
        """One-time startup: create the local memory schema if one is used."""
        logger.info(
            "Initializing ServiceFactory (provider=%s, parser=%s, memory=%s)",
            self._config.llm_provider, self._config.parser_mode, self._config.memory_backend,
        )
        if self._connection is not None:
            await run_migrations(self._connection)
        logger.info("ServiceFactory ready with %d agent(s)", len(self._agents))

    # ------------------------------------------------------------------
    # Session creation
    # ------------------------------------------------------------------

    def create_session(
        self,
        user_id: Optional[str] = None,
        *,
        user_data: Optional[dict] = None,
        on_approval_requested: Optional[ApprovalNotifier] = None,
        on_history_updated: Optional[HistoryListener] = None,
        on_agent_changed: Optional[AgentListener] = None,
    ) -> AgentSession:
        """Create an IDLE session with its own context and transport."""
        ctx = SessionContext(
            user_id=user_id or self._config.default_user_id,
            user_data=dict(user_data or {}),
        )
        transport = ChatModelTransport(self._chat_model_for, self._agents)
        sink = MemorySinkService(self._memory_store) if self._memory_store is not None else None
        return AgentSession(
            ctx=ctx,
            agents=self._agents,
            initial_agent=self._config.initial_agent,
            transport=transport,
            credentials=ProviderKeyIssuer(
                self._config.provider_api_key,
                required=self._config.llm_provider != "ollama",
            ),
            memory_sink=sink,
            approval_timeout=self._config.approval_timeout_seconds,
            on_approval_requested=on_approval_requested,
            on_history_updated=on_history_updated,
            on_agent_changed=on_agent_changed,
        )

    def create_realtime_issuer(self) -> RealtimeSessionIssuer:
        """Shared issuer of ephemeral realtime secrets for browser voice clients."""
        if self._realtime_issuer is None:
            self._realtime_issuer = RealtimeSessionIssuer(
                api_key=self._config.openai_api_key,
                model=self._config.realtime_model,
            )
        return self._realtime_issuer

    async def aclose(self) -> None:
        """Release clients held by the factory."""
        if self._realtime_issuer is not None:
            await self._realtime_issuer.aclose()
            self._realtime_issuer = None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _chat_model_for(self, credential: str):
        return build_chat_model(
            provider=self._config.llm_provider,
            model=self._config.active_llm_model,
            api_key=credential,
            ollama_base_url=self._config.ollama_base_url,
        )

    def _build_parser(self) -> RecordParserPort:
        if self._config.parser_mode == "direct":
            logger.info("Record parser: direct field mapping")
            return FieldMappingParser()
        llm = build_chat_model(
            provider=self._config.llm_provider,
            model=self._config.active_llm_model,
            api_key=self._config.provider_api_key,
            ollama_base_url=self._config.ollama_base_url,
            json_mode=True,
        )
        return LLMRecordParser(llm)

    def _build_memory_store(self) -> Optional[MemoryStorePort]:
        backend = self._config.memory_backend
        if backend == "mem0":
            return Mem0MemoryStore(api_key=self._config.mem_api_key)
        if backend == "sqlite":
            return SQLiteMemoryStore(self._connection)
        logger.info("Memory store disabled (MEMORY_BACKEND=none)")
        return None
