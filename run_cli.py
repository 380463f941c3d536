"""
Run the multi-agent voice orchestrator CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    chat       Interactive session with the agent graph
    agents     Show the agents, their tools and the handoff graph
    parse      Run the record parser on a blob of text
    token      Issue an ephemeral realtime session credential

Examples:
    python run_cli.py chat --user alice
    python run_cli.py parse contact_details --file answers.txt
    python run_cli.py token

Environment variables (all optional):
    LLM_PROVIDER        "openai", "groq", or "ollama" - controls the chat model and the parser
    OPENAI_API_KEY      Required when LLM_PROVIDER=openai (and for `token`)
    GROQ_API_KEY        Required when LLM_PROVIDER=groq
    PARSER_MODE         "llm" (default) or "direct"
    MEMORY_BACKEND      "mem0" (default, needs MEM_API_KEY), "sqlite", or "none"
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    app()
