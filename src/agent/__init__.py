"""
agent - Conversational agent orchestration layer.

Contains agents, tools, interviews, handoffs, approvals and the session
that dispatches model events to the active agent.
Depends on domain/ and application/. Never imports from infrastructure/.
"""
