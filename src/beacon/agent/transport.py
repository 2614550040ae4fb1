"""urllib-based request executor for the agent's ``/v1/agent`` API."""

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ConnectionFailure, InternalServerError, UnexpectedStatus

logger = logging.getLogger(__name__)

AGENT_BASE_PATH = "/v1/agent"

# Non-200 statuses with a dedicated error class; everything else is UnexpectedStatus.
_STATUS_ERRORS = {
    500: InternalServerError,
}


@dataclass
class AgentResponse:
    """Status and body of one agent response."""
    status: int
    text: str = ""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == 200

    def raise_for_status(self) -> None:
        if self.ok:
            return
        error_cls = _STATUS_ERRORS.get(self.status, UnexpectedStatus)
        raise error_cls(self.status, self.text, self.reason)

    def json(self) -> Any:
        """Decode the body, raising if the status is not 200 or the body is not JSON."""
        self.raise_for_status()
        try:
            return json.loads(self.text)
        except ValueError as exc:
            raise UnexpectedStatus(self.status, self.text, "body is not valid JSON") from exc


class AgentTransport:
    """Issues requests against ``{scheme}://{host}:{port}/v1/agent``."""

    def __init__(self, host: str = "localhost", port: int = 8500, scheme: str = "http",
                 timeout: float = 10, use_proxy: bool = False):
        self._base = f"{scheme}://{host}:{port}{AGENT_BASE_PATH}"
        self._timeout = timeout
        if use_proxy:
            self._opener = urllib.request.build_opener()
        else:
            # Agent is local; ignore http_proxy env vars.
            self._opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))

    @property
    def base_url(self) -> str:
        return self._base

    def url_for(self, *segments: str, params: Optional[Dict[str, str]] = None) -> str:
        path = "/".join(urllib.parse.quote(str(s), safe="") for s in segments)
        url = f"{self._base}/{path}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        return url

    def request(self, method: str, *segments: str,
                params: Optional[Dict[str, str]] = None,
                body: Any = None) -> AgentResponse:
        """Send one request and return the response whatever its status.

        Network-level errors raise ConnectionFailure with the cause attached.
        """
        url = self.url_for(*segments, params=params)
        data = None
        headers = {"Accept": "application/json"}
        if body is not None:
            data = json.dumps(body).encode()
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(url, data=data, headers=headers, method=method)

        try:
            with self._opener.open(req, timeout=self._timeout) as resp:
                response = AgentResponse(
                    status=resp.status,
                    text=resp.read().decode(errors="replace"),
                    reason=resp.reason or "",
                )
        except urllib.error.HTTPError as exc:
            response = AgentResponse(
                status=exc.code,
                text=exc.read().decode(errors="replace"),
                reason=str(exc.reason or ""),
            )
        except (urllib.error.URLError, http.client.HTTPException, OSError) as exc:
            reason = getattr(exc, "reason", exc)
            raise ConnectionFailure(f"Error connecting to agent at {self._base}: {reason}") from exc

        logger.debug("%s %s -> %s", method, url, response.status)
        return response

    def get(self, *segments: str, params: Optional[Dict[str, str]] = None) -> AgentResponse:
        return self.request("GET", *segments, params=params)

    def put(self, *segments: str, body: Any = None) -> AgentResponse:
        return self.request("PUT", *segments, body=body)

    def get_json(self, *segments: str, params: Optional[Dict[str, str]] = None) -> Any:
        return self.get(*segments, params=params).json()
