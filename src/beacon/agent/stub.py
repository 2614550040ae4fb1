#!/usr/bin/env python3
"""
In-process Stub Agent

This module provides:
- StubAgent: thread-safe, dict-backed agent state (services, checks, members)
- AgentHTTPHandler: HTTP request handler serving the ``/v1/agent`` endpoints
- start_stub_agent: launches a ThreadingHTTPServer in a daemon thread

The stub answers the way a real agent does for the calls AgentClient makes,
including the 500 returned when a TTL report names an unknown check.
"""

import json
import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional, Tuple

from .checks import CheckState, TtlCheck, check_from_dict
from .client import service_check_id
from .transport import AGENT_BASE_PATH

# Check status stored by the agent for each reported state.
_STATUS_BY_STATE = {
    CheckState.PASSING: "passing",
    CheckState.WARNING: "warning",
    CheckState.CRITICAL: "critical",
}
_STATE_BY_SEGMENT = {state.path: state for state in CheckState}


class StubAgentError(Exception):
    """Request rejected by the stub; carries the HTTP status and body text."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


# ---------------------------------------------------------------------------
# In-memory agent state
# ---------------------------------------------------------------------------

class StubAgent:
    """Thread-safe, dict-backed agent state."""

    def __init__(self, node_name: str = "stub-node", datacenter: str = "dc1",
                 address: str = "127.0.0.1"):
        self._lock = threading.Lock()
        self.node_name = node_name
        self.datacenter = datacenter
        self.address = address
        self._services: Dict[str, Dict[str, Any]] = {}
        self._checks: Dict[str, Dict[str, Any]] = {}
        self._ttl_checks: set[str] = set()
        self._members: Dict[str, Dict[str, Any]] = {
            node_name: self._member_entry(node_name, address),
        }
        self.left_nodes: List[str] = []

    @staticmethod
    def _member_entry(name: str, address: str) -> Dict[str, Any]:
        return {
            "Name": name,
            "Addr": address,
            "Port": 8301,
            "Tags": {"role": "node"},
            "Status": 1,
            "ProtocolMin": 1,
            "ProtocolMax": 2,
            "ProtocolCur": 2,
            "DelegateMin": 2,
            "DelegateMax": 4,
            "DelegateCur": 4,
        }

    def add_member(self, name: str, address: str) -> None:
        with self._lock:
            self._members[name] = self._member_entry(name, address)

    def _new_check(self, check_id: str, name: str, notes: str = "",
                   service_id: str = "", service_name: str = "") -> Dict[str, Any]:
        return {
            "Node": self.node_name,
            "CheckID": check_id,
            "Name": name,
            "Status": "critical",
            "Notes": notes,
            "Output": "",
            "ServiceID": service_id,
            "ServiceName": service_name,
        }

    def register_service(self, body: Dict[str, Any]) -> str:
        name = body.get("Name")
        if not name:
            raise StubAgentError(400, "Missing service name")
        service_id = body.get("Id") or body.get("ID") or name
        try:
            check = check_from_dict(body.get("Check") or {})
        except ValueError as exc:
            raise StubAgentError(400, str(exc))

        with self._lock:
            self._services[service_id] = {
                "ID": service_id,
                "Service": name,
                "Tags": list(body.get("Tags") or []),
                "Port": int(body.get("Port") or 0),
                "Address": body.get("Address", ""),
            }
            check_id = service_check_id(service_id)
            if check is not None:
                self._checks[check_id] = self._new_check(
                    check_id, f"Service '{name}' check",
                    service_id=service_id, service_name=name,
                )
                if isinstance(check, TtlCheck):
                    self._ttl_checks.add(check_id)
                else:
                    self._ttl_checks.discard(check_id)
        return service_id

    def deregister_service(self, service_id: str) -> None:
        with self._lock:
            if self._services.pop(service_id, None) is None:
                raise StubAgentError(404, f'Unknown service ID "{service_id}"')
            for check_id in [c for c, d in self._checks.items() if d["ServiceID"] == service_id]:
                self._checks.pop(check_id)
                self._ttl_checks.discard(check_id)

    def register_check(self, body: Dict[str, Any]) -> str:
        name = body.get("Name")
        if not name:
            raise StubAgentError(400, "Missing check name")
        check_id = body.get("ID") or name
        definition = {k: body[k] for k in ("TTL", "Script", "HTTP", "Interval") if k in body}
        try:
            check = check_from_dict(definition)
        except ValueError as exc:
            raise StubAgentError(400, str(exc))
        if check is None:
            raise StubAgentError(400, "Must provide TTL or Script and Interval!")

        with self._lock:
            self._checks[check_id] = self._new_check(check_id, name, notes=body.get("Notes") or "")
            if isinstance(check, TtlCheck):
                self._ttl_checks.add(check_id)
            else:
                self._ttl_checks.discard(check_id)
        return check_id

    def deregister_check(self, check_id: str) -> None:
        with self._lock:
            if self._checks.pop(check_id, None) is None:
                raise StubAgentError(404, f'Unknown check ID "{check_id}"')
            self._ttl_checks.discard(check_id)

    def update_ttl(self, check_id: str, state: CheckState, note: Optional[str] = None) -> None:
        with self._lock:
            check = self._checks.get(check_id)
            if check is None or check_id not in self._ttl_checks:
                raise StubAgentError(500, f'CheckID "{check_id}" does not have associated TTL')
            check["Status"] = _STATUS_BY_STATE[state]
            check["Output"] = note or ""

    def force_leave(self, node: str) -> None:
        with self._lock:
            self.left_nodes.append(node)
            member = self._members.get(node)
            if member is not None:
                member["Status"] = 3

    def services(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {sid: dict(s) for sid, s in self._services.items()}

    def checks(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {cid: dict(c) for cid, c in self._checks.items()}

    def members(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(m) for m in self._members.values()]

    def self_info(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "Config": {
                    "NodeName": self.node_name,
                    "Datacenter": self.datacenter,
                    "AdvertiseAddr": self.address,
                    "Server": False,
                },
                "Member": dict(self._members[self.node_name]),
            }


# ---------------------------------------------------------------------------
# HTTP handler (serves /v1/agent from the stub process)
# ---------------------------------------------------------------------------

def _make_handler(agent: StubAgent):
    """Create a handler class bound to the given agent instance."""

    class AgentHTTPHandler(BaseHTTPRequestHandler):

        def log_message(self, format, *args):
            # Silence default stderr logging
            pass

        def _respond(self, status: int, body: str = "", content_type: str = "text/plain"):
            data = body.encode()
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def _json_response(self, data: Any):
            self._respond(200, json.dumps(data), "application/json")

        def _route(self) -> Tuple[List[str], Dict[str, List[str]]]:
            parsed = urllib.parse.urlparse(self.path)
            path = parsed.path.rstrip("/")
            if not path.startswith(AGENT_BASE_PATH + "/"):
                return [], {}
            rest = path[len(AGENT_BASE_PATH) + 1:]
            segments = [urllib.parse.unquote(s) for s in rest.split("/")]
            return segments, urllib.parse.parse_qs(parsed.query)

        def _read_json(self) -> Dict[str, Any]:
            length = int(self.headers.get("Content-Length") or 0)
            raw = self.rfile.read(length) if length else b""
            try:
                data = json.loads(raw or b"{}")
            except ValueError:
                raise StubAgentError(400, "Request decode failed")
            if not isinstance(data, dict):
                raise StubAgentError(400, "Request decode failed")
            return data

        def do_GET(self):
            segments, qs = self._route()
            try:
                self._handle_get(segments, qs)
            except StubAgentError as exc:
                self._respond(exc.status, exc.message)

        def do_PUT(self):
            segments, _ = self._route()
            try:
                if segments == ["service", "register"]:
                    agent.register_service(self._read_json())
                    self._respond(200)
                elif segments == ["check", "register"]:
                    agent.register_check(self._read_json())
                    self._respond(200)
                else:
                    self._respond(404, "not found")
            except StubAgentError as exc:
                self._respond(exc.status, exc.message)

        def _handle_get(self, segments: List[str], qs: Dict[str, List[str]]):
            if segments == ["self"]:
                self._json_response(agent.self_info())
            elif segments == ["services"]:
                self._json_response(agent.services())
            elif segments == ["checks"]:
                self._json_response(agent.checks())
            elif segments == ["members"]:
                self._json_response(agent.members())
            elif len(segments) == 3 and segments[:2] == ["service", "deregister"]:
                agent.deregister_service(segments[2])
                self._respond(200)
            elif len(segments) == 3 and segments[:2] == ["check", "deregister"]:
                agent.deregister_check(segments[2])
                self._respond(200)
            elif len(segments) == 3 and segments[0] == "check" and segments[1] in _STATE_BY_SEGMENT:
                note = qs.get("note", [None])[0]
                agent.update_ttl(segments[2], _STATE_BY_SEGMENT[segments[1]], note)
                self._respond(200)
            elif len(segments) == 2 and segments[0] == "force-leave":
                agent.force_leave(segments[1])
                self._respond(200)
            else:
                self._respond(404, "not found")

    return AgentHTTPHandler


def start_stub_agent(
    agent: StubAgent,
    host: str = "127.0.0.1",
    port: int = 8500,
) -> ThreadingHTTPServer:
    """Start a ThreadingHTTPServer in a daemon thread and return the server.

    Pass ``port=0`` to bind an ephemeral port; read it back from
    ``server.server_address[1]``.
    """
    handler = _make_handler(agent)
    server = ThreadingHTTPServer((host, port), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
