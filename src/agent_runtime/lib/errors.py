"""Exception taxonomy for the agent runtime.

Governance denials are not exceptions; they are returned as
``ValidationResult`` objects. Everything here is either fatal for the
current session attempt or is caught at the tool dispatch boundary.
"""

from typing import Optional


class AgentRuntimeError(Exception):
    """Base class for all agent runtime errors."""
    pass


class ConfigurationError(AgentRuntimeError):
    """Exception raised for configuration-related errors."""
    pass


class ProviderError(AgentRuntimeError):
    """Base class for model provider failures."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ConnectivityError(ProviderError):
    """Raised when a model backend cannot be reached."""

    def __init__(self, host: str, remediation: str, cause: Optional[BaseException] = None,
                 provider: Optional[str] = None):
        message = f"Cannot connect to {provider or 'model'} server at {host}. {remediation}"
        if cause is not None:
            message = f"{message} Cause: {cause}"
        super().__init__(message, provider=provider)
        self.host = host
        self.remediation = remediation


class VendorAPIError(ProviderError):
    """Raised when a backend answers with a non-success HTTP status."""

    def __init__(self, provider: str, status_code: int, body: str):
        super().__init__(f"{provider} API error ({status_code}): {body}", provider=provider)
        self.status_code = status_code
        self.body = body


class ProviderResponseError(ProviderError):
    """Raised when a backend response has no usable body or candidate."""
    pass


class ToolExecutionError(AgentRuntimeError):
    """Raised by tool implementations; converted to a failed ToolResult by the executor."""
    pass


class SessionPersistenceError(AgentRuntimeError):
    """Raised when a session record cannot be written or read back."""

    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__(message)
        self.session_id = session_id


class NestingDepthError(AgentRuntimeError):
    """Raised when creating a child session would exceed the nesting limit."""
    pass
