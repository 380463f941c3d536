"""
infrastructure - Concrete implementations of domain ports.

Contains all vendor-specific code: LangChain chat models, OpenAI realtime
credentials, mem0, SQLite.
Implements domain/ ports; the chat transport also reads agent/ specs.
Never imported by application/.
"""
