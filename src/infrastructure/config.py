"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass constructed from the environment once at startup, or
passed explicitly in tests. validate() turns a missing credential into a
ConfigurationError before any session is created.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from domain.exceptions import ConfigurationError

_PROVIDERS = ("openai", "groq", "ollama")
_MEMORY_BACKENDS = ("mem0", "sqlite", "none")
_PARSER_MODES = ("llm", "direct")


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the agent orchestrator.

    No module-level globals. Construct via from_env() or pass explicitly
    in tests.
    """

    # ── Centralized LLM Provider ────────────────────────────────
    # One setting controls the chat transport and the record parser.
    # Allowed: "openai", "groq", "ollama"
    llm_provider: str = "openai"

    # Model names; only the one matching llm_provider is used.
    llm_model_openai: str = "gpt-4o-mini"
    llm_model_groq: str = "llama-3.3-70b-versatile"
    llm_model_ollama: str = "llama3.2"

    # Connection details
    ollama_base_url: str = "http://localhost:11434/"
    openai_api_key: str = ""
    groq_api_key: str = ""

    # Realtime (browser voice clients fetch an ephemeral key via the API)
    realtime_model: str = "gpt-4o-mini-realtime-preview"

    # Record parser: "llm" uses the provider above, "direct" parses key: value lines
    parser_mode: str = "llm"

    # Memory store: "mem0" (hosted, needs MEM_API_KEY), "sqlite" (local), "none"
    memory_backend: str = "mem0"
    mem_api_key: str = ""
    memory_db_path: str = "memory.db"

    # Sessions
    default_user_id: str = "default_user"
    initial_agent: str = "voice_agent"
    approval_required_tools: frozenset[str] = field(default_factory=frozenset)
    approval_timeout_seconds: Optional[float] = 30.0
    interview_strict: bool = False

    @property
    def active_llm_model(self) -> str:
        """Return the model name for the currently active LLM provider."""
        if self.llm_provider == "openai":
            return self.llm_model_openai
        elif self.llm_provider == "groq":
            return self.llm_model_groq
        return self.llm_model_ollama

    @property
    def provider_api_key(self) -> str:
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "groq":
            return self.groq_api_key
        return ""

    def validate(self) -> None:
        """Raise ConfigurationError for unknown options or missing credentials."""
        if self.llm_provider not in _PROVIDERS:
            raise ConfigurationError(
                f"Unsupported LLM_PROVIDER '{self.llm_provider}'. "
                f"Must be one of: {', '.join(_PROVIDERS)}"
            )
        if self.memory_backend not in _MEMORY_BACKENDS:
            raise ConfigurationError(
                f"Unsupported MEMORY_BACKEND '{self.memory_backend}'. "
                f"Must be one of: {', '.join(_MEMORY_BACKENDS)}"
            )
        if self.parser_mode not in _PARSER_MODES:
            raise ConfigurationError(
                f"Unsupported PARSER_MODE '{self.parser_mode}'. "
                f"Must be one of: {', '.join(_PARSER_MODES)}"
            )
        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required when LLM_PROVIDER='openai'")
        if self.llm_provider == "groq" and not self.groq_api_key:
            raise ConfigurationError("GROQ_API_KEY is required when LLM_PROVIDER='groq'")
        if self.memory_backend == "mem0" and not self.mem_api_key:
            raise ConfigurationError("MEM_API_KEY is required when MEMORY_BACKEND='mem0'")

    @classmethod
    def from_env(cls) -> Settings:
        """Build Settings from environment variables (and a .env file)."""
        from dotenv import load_dotenv
        load_dotenv()

        timeout_raw = os.getenv("APPROVAL_TIMEOUT_SECONDS", "30").strip()
        approval_timeout = None if timeout_raw.lower() in ("", "none", "0") else float(timeout_raw)

        return cls(
            llm_provider=os.getenv("LLM_PROVIDER", "openai").lower().strip(),
            llm_model_openai=os.getenv("LLM_MODEL_OPENAI", "gpt-4o-mini"),
            llm_model_groq=os.getenv("LLM_MODEL_GROQ", "llama-3.3-70b-versatile"),
            llm_model_ollama=os.getenv("LLM_MODEL_OLLAMA", "llama3.2"),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            realtime_model=os.getenv("REALTIME_MODEL", "gpt-4o-mini-realtime-preview"),
            parser_mode=os.getenv("PARSER_MODE", "llm").lower().strip(),
            memory_backend=os.getenv("MEMORY_BACKEND", "mem0").lower().strip(),
            mem_api_key=os.getenv("MEM_API_KEY", ""),
            memory_db_path=os.getenv("MEMORY_DB_PATH", "memory.db"),
            default_user_id=os.getenv("DEFAULT_USER_ID", "default_user"),
            initial_agent=os.getenv("INITIAL_AGENT", "voice_agent"),
            approval_required_tools=_split_csv(os.getenv("APPROVAL_REQUIRED_TOOLS", "")),
            approval_timeout_seconds=approval_timeout,
            interview_strict=os.getenv("INTERVIEW_STRICT", "false").lower() in ("1", "true", "yes"),
        )


def _split_csv(value: str) -> frozenset[str]:
    return frozenset(item.strip() for item in value.split(",") if item.strip())
