"""
domain.exceptions - Custom exception hierarchy for the agent orchestrator.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed.

Fatal:       ConfigurationError, SessionConnectionError
Recoverable: everything raised while handling a single event. The session
             converts these to tool result text; they never end the session.
"""


class DomainError(Exception):
    """Base exception for all domain-level errors."""


class ConfigurationError(DomainError):
    """Raised at startup for missing credentials or an invalid agent graph."""


class SessionConnectionError(DomainError, ConnectionError):
    """Raised when credential issuance or the model transport fails."""


class SessionStateError(DomainError):
    """Raised when a session operation is called in the wrong lifecycle state."""


class SessionClosedError(SessionStateError):
    """Raised when an event arrives after the session started closing."""


class ToolInputError(DomainError):
    """Raised when tool parameters fail schema validation."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Invalid input for tool '{tool_name}': {message}")
        self.tool_name = tool_name


class UnknownToolError(DomainError):
    """Raised when the model asks for a tool the active agent does not have."""


class UnknownFieldError(DomainError):
    """Raised by a strict interview when a field key is not in its schema."""


class HandoffNotPermittedError(DomainError):
    """Raised when a handoff directive names an agent outside handoff_targets."""

    def __init__(self, source: str, target: str):
        super().__init__(
            f"Agent '{source}' is not permitted to hand off to '{target}'"
        )
        self.source = source
        self.target = target


class NoDataCollectedError(DomainError):
    """Raised when an interview is finalized before any field was recorded."""


class RecordParseError(DomainError):
    """Raised when collected text cannot be turned into a structured record."""


class ApprovalDeniedError(DomainError):
    """Raised when an approval-gated tool call is denied or times out."""


class MemorySinkError(DomainError):
    """Raised when the memory store rejects a write."""
