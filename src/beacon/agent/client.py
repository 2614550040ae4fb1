"""Client for the agent's ``/v1/agent`` endpoints.

Each public method issues exactly one request. Registration calls treat any
status other than 200 as RegistrationFailed; health reports translate the
agent's 500 for an unknown check into NotRegistered.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .checks import (
    Check,
    CheckState,
    HealthCheckDescriptor,
    http_check,
    script_check,
    ttl_check,
)
from .errors import (
    AgentError,
    ConnectionFailure,
    InternalServerError,
    NotRegistered,
    RegistrationFailed,
    UnexpectedStatus,
)
from .models import AgentSelf, HealthCheck, Member, Registration, Service
from .transport import AgentResponse, AgentTransport

logger = logging.getLogger(__name__)

# Check id the agent assigns to a check registered inline with a service.
SERVICE_CHECK_PREFIX = "service:"

_SHAPE_NAMES = {dict: "object", list: "array"}


def service_check_id(service_id: str) -> str:
    return SERVICE_CHECK_PREFIX + service_id


class AgentClient:
    """Synchronous, stateless client for the local agent."""

    def __init__(self, host: str = "localhost", port: int = 8500, scheme: str = "http",
                 timeout: float = 10, use_proxy: bool = False,
                 transport: Optional[AgentTransport] = None):
        if transport is None:
            transport = AgentTransport(
                host=host, port=port, scheme=scheme, timeout=timeout, use_proxy=use_proxy,
            )
        self._transport = transport

    @classmethod
    def from_config(cls, config) -> 'AgentClient':
        """Build a client from a BeaconConfig."""
        return cls(
            host=config.agent_host,
            port=config.agent_port,
            scheme=config.scheme,
            timeout=config.timeout,
            use_proxy=config.use_proxy,
        )

    @staticmethod
    def _require_ok(response: AgentResponse) -> None:
        if response.status != 200:
            raise RegistrationFailed(response.text)

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    def ping(self) -> None:
        """Raise ConnectionFailure unless ``/self`` answers 200."""
        try:
            response = self._transport.get("self")
        except Exception as exc:
            raise ConnectionFailure("Error connecting to agent") from exc
        if response.status != 200:
            raise ConnectionFailure(
                f"Error pinging agent: {response.reason or response.status}"
            )

    # ------------------------------------------------------------------
    # Service registration
    # ------------------------------------------------------------------

    def register(self, registration: Registration) -> None:
        """Submit a service registration. All register_* helpers end up here."""
        logger.debug("Registering service %s", registration.id or registration.name)
        response = self._transport.put("service", "register", body=registration.to_dict())
        self._require_ok(response)

    def register_with_check(self, port: int, check: Optional[Check], name: str,
                            id: Optional[str] = None, tags: Iterable[str] = ()) -> None:
        self.register(Registration(name=name, id=id, port=port, check=check, tags=list(tags)))

    def register_ttl(self, port: int, ttl: int, name: str,
                     id: Optional[str] = None, tags: Iterable[str] = ()) -> None:
        """Register a service with a TTL check of ``ttl`` seconds."""
        self.register_with_check(port, ttl_check(ttl), name, id, tags)

    def register_script(self, port: int, script: str, interval: int, name: str,
                        id: Optional[str] = None, tags: Iterable[str] = ()) -> None:
        """Register a service whose health script runs every ``interval`` seconds."""
        self.register_with_check(port, script_check(script, interval), name, id, tags)

    def register_http(self, port: int, url: str, interval: int, name: str,
                      id: Optional[str] = None, tags: Iterable[str] = ()) -> None:
        """Register a service whose health URL is polled every ``interval`` seconds."""
        self.register_with_check(port, http_check(url, interval), name, id, tags)

    def deregister(self, service_id: str) -> None:
        response = self._transport.get("service", "deregister", service_id)
        self._require_ok(response)

    # ------------------------------------------------------------------
    # Standalone checks
    # ------------------------------------------------------------------

    def register_check(self, descriptor: HealthCheckDescriptor) -> None:
        logger.debug("Registering check %s", descriptor.id)
        response = self._transport.put("check", "register", body=descriptor.to_dict())
        self._require_ok(response)

    def register_ttl_check(self, check_id: str, name: str, ttl: int,
                           notes: Optional[str] = None) -> None:
        self.register_check(HealthCheckDescriptor(
            id=check_id, name=name, definition=ttl_check(ttl), notes=notes,
        ))

    def register_script_check(self, check_id: str, name: str, script: str, interval: int,
                              notes: Optional[str] = None) -> None:
        self.register_check(HealthCheckDescriptor(
            id=check_id, name=name, definition=script_check(script, interval), notes=notes,
        ))

    def deregister_check(self, check_id: str) -> None:
        response = self._transport.get("check", "deregister", check_id)
        self._require_ok(response)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _query(self, endpoint: str, shape: type) -> Any:
        """GET ``endpoint`` and check the decoded body is a ``shape`` (null reads as empty)."""
        response = self._transport.get(endpoint)
        data = response.json()
        if data is None:
            return shape()
        if not isinstance(data, shape):
            raise UnexpectedStatus(
                response.status, response.text, f"expected a JSON {_SHAPE_NAMES[shape]}",
            )
        return data

    def get_agent_self(self) -> AgentSelf:
        return AgentSelf.from_dict(self._query("self", dict))

    def get_checks(self) -> Dict[str, HealthCheck]:
        data = self._query("checks", dict)
        return {check_id: HealthCheck.from_dict(d) for check_id, d in data.items()}

    def get_services(self) -> Dict[str, Service]:
        data = self._query("services", dict)
        return {service_id: Service.from_dict(d) for service_id, d in data.items()}

    def get_members(self) -> List[Member]:
        data = self._query("members", list)
        return [Member.from_dict(d) for d in data]

    def is_registered(self, service_id: str) -> bool:
        """Fetches every service on each call; cache the result if calling often."""
        return service_id in self.get_services()

    def force_leave(self, node: str) -> None:
        """Ask the agent to move ``node`` to the left state. Never raises."""
        try:
            self._transport.get("force-leave", node)
        except AgentError as exc:
            logger.debug("force-leave %s not acknowledged: %s", node, exc)

    # ------------------------------------------------------------------
    # TTL health reports
    # ------------------------------------------------------------------

    def report_state(self, check_id: str, state: CheckState, note: Optional[str] = None) -> None:
        """Report ``state`` for ``check_id``.

        Raises NotRegistered if the agent answers 500, which it does for an
        unknown check id. Other errors propagate unchanged.
        """
        params = {"note": note} if note is not None else None
        try:
            self._transport.get("check", state.path, check_id, params=params).raise_for_status()
        except InternalServerError as exc:
            raise NotRegistered(check_id) from exc

    def check_ttl(self, service_id: str, state: CheckState, note: Optional[str] = None) -> None:
        """Report on the check registered inline with ``service_id``.

        Only valid for service checks that were not given a custom check id.
        """
        self.report_state(service_check_id(service_id), state, note)

    def ttl_pass(self, service_id: str, note: Optional[str] = None) -> None:
        self.check_ttl(service_id, CheckState.PASSING, note)

    def ttl_warn(self, service_id: str, note: Optional[str] = None) -> None:
        self.check_ttl(service_id, CheckState.WARNING, note)

    def ttl_fail(self, service_id: str, note: Optional[str] = None) -> None:
        self.check_ttl(service_id, CheckState.CRITICAL, note)
