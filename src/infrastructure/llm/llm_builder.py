"""
infrastructure.llm.llm_builder - Centralized chat-model construction.

Both the conversation transport and the LLM record parser get their chat
model here, so LLM_PROVIDER switches every model call at once.

Supported providers:
    - "openai"  → langchain_openai.ChatOpenAI
    - "groq"    → langchain_groq.ChatGroq
    - "ollama"  → langchain_ollama.ChatOllama

Provider packages are imported lazily; only the selected one must be
installed.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from langchain_core.language_models import BaseChatModel

from domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Completion budget for Groq when the caller sets none
_GROQ_DEFAULT_MAX_TOKENS = 512


def _openai(model, api_key, temperature, json_mode, max_tokens, base_url) -> BaseChatModel:
    from langchain_openai import ChatOpenAI

    _require_key(api_key, "OPENAI_API_KEY", "openai")
    options = dict(model=model, temperature=temperature, api_key=api_key)
    if json_mode:
        options["model_kwargs"] = {"response_format": {"type": "json_object"}}
    if max_tokens is not None:
        options["max_tokens"] = max_tokens
    return ChatOpenAI(**options)


def _groq(model, api_key, temperature, json_mode, max_tokens, base_url) -> BaseChatModel:
    from langchain_groq import ChatGroq

    _require_key(api_key, "GROQ_API_KEY", "groq")
    options = dict(
        model=model,
        temperature=temperature,
        api_key=api_key,
        max_tokens=max_tokens if max_tokens is not None else _GROQ_DEFAULT_MAX_TOKENS,
    )
    if json_mode:
        options["model_kwargs"] = {"response_format": {"type": "json_object"}}
    return ChatGroq(**options)


def _ollama(model, api_key, temperature, json_mode, max_tokens, base_url) -> BaseChatModel:
    from langchain_ollama import ChatOllama

    options = dict(model=model, temperature=temperature, base_url=base_url)
    if json_mode:
        options["format"] = "json"
    if max_tokens is not None:
        options["num_predict"] = max_tokens
    return ChatOllama(**options)


_BUILDERS: Dict[str, Callable[..., BaseChatModel]] = {
    "openai": _openai,
    "groq": _groq,
    "ollama": _ollama,
}


def _require_key(api_key: str, env_name: str, provider: str) -> None:
    if not api_key:
        raise ConfigurationError(f"{env_name} is required when LLM_PROVIDER='{provider}'")


def build_chat_model(
    *,
    provider: str,
    model: str,
    api_key: str = "",
    temperature: float = 0,
    ollama_base_url: str = "http://localhost:11434/",
    json_mode: bool = False,
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """Build a chat model for the given provider.

    Args:
        provider: One of "openai", "groq", "ollama".
        model: Model name for the selected provider.
        api_key: Provider API key (ignored for ollama).
        temperature: Sampling temperature.
        ollama_base_url: Ollama server URL (only used when provider="ollama").
        json_mode: Ask the provider for a JSON object response.
        max_tokens: Completion budget. Groq falls back to 512 when unset.

    Returns:
        A configured LangChain chat model.

    Raises:
        ConfigurationError: If the provider is unknown or its key is missing.
    """
    provider = provider.lower().strip()
    builder = _BUILDERS.get(provider)
    if builder is None:
        raise ConfigurationError(
            f"Unsupported LLM_PROVIDER: '{provider}'. "
            f"Must be one of: {', '.join(_BUILDERS)}."
        )

    logger.info("Building %s chat model (model=%s, json_mode=%s)", provider, model, json_mode)
    return builder(model, api_key, temperature, json_mode, max_tokens, ollama_base_url)
