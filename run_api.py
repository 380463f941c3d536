"""
Run the multi-agent voice orchestrator REST API.

Usage:
    python run_api.py

Environment variables (all optional):
    LLM_PROVIDER        "openai", "groq", or "ollama"
    OPENAI_API_KEY      Required for LLM_PROVIDER=openai and POST /session/token
    REALTIME_MODEL      Model for ephemeral realtime sessions
    MEMORY_BACKEND      "mem0", "sqlite", or "none"
    APPROVAL_REQUIRED_TOOLS   Comma-separated tool names that need approval
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "adapters.rest.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
