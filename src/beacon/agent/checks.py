"""Check definitions and the TTL check state table.

A check is one of three frozen dataclasses (TtlCheck, ScriptCheck, HttpCheck).
The factory functions below are the only place where integer seconds become
the agent's duration strings (``30`` -> ``"30s"``).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


def format_duration(seconds: int) -> str:
    """Render a number of seconds in the agent's duration format."""
    return f"{seconds}s"


@dataclass(frozen=True)
class TtlCheck:
    """Agent marks the check critical if no report arrives within ``ttl``."""
    ttl: str

    def to_dict(self) -> Dict[str, Any]:
        return {"TTL": self.ttl}


@dataclass(frozen=True)
class ScriptCheck:
    """Agent runs ``script`` every ``interval``."""
    script: str
    interval: str

    def to_dict(self) -> Dict[str, Any]:
        return {"Script": self.script, "Interval": self.interval}


@dataclass(frozen=True)
class HttpCheck:
    """Agent polls ``http`` every ``interval``."""
    http: str
    interval: str

    def to_dict(self) -> Dict[str, Any]:
        return {"HTTP": self.http, "Interval": self.interval}


Check = Union[TtlCheck, ScriptCheck, HttpCheck]


def ttl_check(ttl_seconds: int) -> TtlCheck:
    return TtlCheck(ttl=format_duration(ttl_seconds))


def script_check(script: str, interval_seconds: int) -> ScriptCheck:
    return ScriptCheck(script=script, interval=format_duration(interval_seconds))


def http_check(url: str, interval_seconds: int) -> HttpCheck:
    return HttpCheck(http=url, interval=format_duration(interval_seconds))


def check_from_dict(data: Dict[str, Any]) -> Optional[Check]:
    """Rebuild a check from its wire form. Returns None for an empty body."""
    if not data:
        return None
    if "TTL" in data:
        return TtlCheck(ttl=str(data["TTL"]))
    if "HTTP" in data:
        return HttpCheck(http=data["HTTP"], interval=str(data.get("Interval", "")))
    if "Script" in data:
        return ScriptCheck(script=data["Script"], interval=str(data.get("Interval", "")))
    raise ValueError(f"Unrecognised check definition: {sorted(data)}")


class CheckState(Enum):
    """State reported for a TTL check. The value is the request path segment."""
    PASSING = "pass"
    WARNING = "warn"
    CRITICAL = "fail"

    @property
    def path(self) -> str:
        return self.value


@dataclass(frozen=True)
class HealthCheckDescriptor:
    """A standalone check, registered on its own rather than with a service."""
    id: str
    name: str
    definition: Union[TtlCheck, ScriptCheck]
    notes: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.definition, (TtlCheck, ScriptCheck)):
            raise TypeError(
                "Standalone checks must be TTL or script based, "
                f"got {type(self.definition).__name__}"
            )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"ID": self.id, "Name": self.name}
        data.update(self.definition.to_dict())
        if self.notes is not None:
            data["Notes"] = self.notes
        return data
