"""Error taxonomy for the agent client.

Every failure raised by this package derives from AgentError and carries an
ErrorKind, so callers can either catch the specific class or branch on
``err.kind``. NotRegistered and ConnectionFailure are siblings: catching one
never catches the other.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Category of an agent failure"""
    REGISTRATION_FAILED = "registration_failed"
    NOT_REGISTERED = "not_registered"
    CONNECTION_FAILURE = "connection_failure"
    TRANSPORT = "transport"


class AgentError(Exception):
    """Base class for all agent client failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT


class RegistrationFailed(AgentError):
    """A register/deregister call returned a non-200 status.

    ``body`` is the agent's response text, unchanged.
    """

    kind = ErrorKind.REGISTRATION_FAILED

    def __init__(self, body: str):
        super().__init__(body)
        self.body = body


class NotRegistered(AgentError):
    """A health report targeted a check id the agent does not know."""

    kind = ErrorKind.NOT_REGISTERED

    def __init__(self, check_id: str):
        super().__init__(f"Check '{check_id}' is not registered with the agent")
        self.check_id = check_id


class ConnectionFailure(AgentError):
    """The agent could not be reached or did not answer a ping."""

    kind = ErrorKind.CONNECTION_FAILURE


class TransportError(AgentError):
    """Raised by the transport when a response cannot be used as-is."""

    kind = ErrorKind.TRANSPORT


class UnexpectedStatus(TransportError):
    def __init__(self, status: int, body: str, reason: Optional[str] = None):
        message = f"Unexpected response from agent: {status}"
        if reason:
            message += f" {reason}"
        if body:
            message += f": {body}"
        super().__init__(message)
        self.status = status
        self.body = body


class InternalServerError(UnexpectedStatus):
    """The agent answered 500."""
