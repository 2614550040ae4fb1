"""
Agent HTTP Client

This package provides:
1. AgentClient - HTTP client for the local agent's /v1/agent endpoints
2. Check definitions (TtlCheck, ScriptCheck, HttpCheck) and CheckState
3. Registration and the query views (AgentSelf, Member, Service, HealthCheck)
4. StubAgent / start_stub_agent - an in-process agent for tests and local use
"""

from .checks import (
    Check,
    CheckState,
    HealthCheckDescriptor,
    HttpCheck,
    ScriptCheck,
    TtlCheck,
    format_duration,
    http_check,
    script_check,
    ttl_check,
)
from .client import AgentClient, service_check_id
from .errors import (
    AgentError,
    ConnectionFailure,
    ErrorKind,
    InternalServerError,
    NotRegistered,
    RegistrationFailed,
    TransportError,
    UnexpectedStatus,
)
from .models import AgentSelf, HealthCheck, Member, Registration, Service
from .stub import StubAgent, start_stub_agent
from .transport import AgentResponse, AgentTransport

__version__ = '0.1.0'
__all__ = [
    'AgentClient',
    'AgentError',
    'AgentResponse',
    'AgentSelf',
    'AgentTransport',
    'Check',
    'CheckState',
    'ConnectionFailure',
    'ErrorKind',
    'HealthCheck',
    'HealthCheckDescriptor',
    'HttpCheck',
    'InternalServerError',
    'Member',
    'NotRegistered',
    'Registration',
    'RegistrationFailed',
    'ScriptCheck',
    'Service',
    'StubAgent',
    'TransportError',
    'TtlCheck',
    'UnexpectedStatus',
    'format_duration',
    'http_check',
    'script_check',
    'service_check_id',
    'start_stub_agent',
    'ttl_check',
]
