"""Registration payload and the read-only views returned by agent queries."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .checks import Check


@dataclass
class Registration:
    """Service registration submitted to ``service/register``."""
    name: str
    port: int = 0
    id: Optional[str] = None
    check: Optional[Check] = None
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Wire body. ``Id`` and ``Check`` are left out when unset."""
        data: Dict[str, Any] = {"Name": self.name}
        if self.id is not None:
            data["Id"] = self.id
        data["Port"] = self.port
        if self.check is not None:
            data["Check"] = self.check.to_dict()
        data["Tags"] = list(self.tags)
        return data


@dataclass
class Service:
    """A service as the agent reports it under ``/services``."""
    id: str
    service: str
    tags: List[str] = field(default_factory=list)
    port: int = 0
    address: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ID": self.id,
            "Service": self.service,
            "Tags": list(self.tags),
            "Port": self.port,
            "Address": self.address,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Service':
        return cls(
            id=data.get("ID", ""),
            service=data.get("Service", ""),
            tags=list(data.get("Tags") or []),
            port=int(data.get("Port") or 0),
            address=data.get("Address", "") or "",
        )


@dataclass
class HealthCheck:
    """A check as the agent reports it under ``/checks``."""
    check_id: str
    name: str = ""
    node: str = ""
    status: str = ""
    notes: str = ""
    output: str = ""
    service_id: str = ""
    service_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Node": self.node,
            "CheckID": self.check_id,
            "Name": self.name,
            "Status": self.status,
            "Notes": self.notes,
            "Output": self.output,
            "ServiceID": self.service_id,
            "ServiceName": self.service_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HealthCheck':
        return cls(
            check_id=data.get("CheckID", ""),
            name=data.get("Name", ""),
            node=data.get("Node", ""),
            status=data.get("Status", ""),
            notes=data.get("Notes", "") or "",
            output=data.get("Output", "") or "",
            service_id=data.get("ServiceID", "") or "",
            service_name=data.get("ServiceName", "") or "",
        )


@dataclass
class Member:
    """A gossip pool member seen by the agent."""
    name: str
    address: str = ""
    port: int = 0
    tags: Dict[str, str] = field(default_factory=dict)
    status: int = 0
    protocol_min: int = 0
    protocol_max: int = 0
    protocol_cur: int = 0
    delegate_min: int = 0
    delegate_max: int = 0
    delegate_cur: int = 0

    # wire key -> attribute name, for the integer fields
    _INT_FIELDS = {
        "Port": "port",
        "Status": "status",
        "ProtocolMin": "protocol_min",
        "ProtocolMax": "protocol_max",
        "ProtocolCur": "protocol_cur",
        "DelegateMin": "delegate_min",
        "DelegateMax": "delegate_max",
        "DelegateCur": "delegate_cur",
    }

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "Name": self.name,
            "Addr": self.address,
            "Tags": dict(self.tags),
        }
        for key, attr in self._INT_FIELDS.items():
            data[key] = getattr(self, attr)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Member':
        kwargs: Dict[str, Any] = {
            "name": data.get("Name", ""),
            "address": data.get("Addr", "") or "",
            "tags": dict(data.get("Tags") or {}),
        }
        for key, attr in cls._INT_FIELDS.items():
            kwargs[attr] = int(data.get(key) or 0)
        return cls(**kwargs)


@dataclass
class AgentSelf:
    """Response of ``/self``: the agent's configuration and its own member entry."""
    config: Dict[str, Any] = field(default_factory=dict)
    member: Optional[Member] = None

    @property
    def node_name(self) -> Optional[str]:
        return self.config.get("NodeName")

    @property
    def datacenter(self) -> Optional[str]:
        return self.config.get("Datacenter")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Config": dict(self.config),
            "Member": self.member.to_dict() if self.member else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AgentSelf':
        member = data.get("Member")
        return cls(
            config=dict(data.get("Config") or {}),
            member=Member.from_dict(member) if member else None,
        )
