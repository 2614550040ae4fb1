"""Configuration loading and merging for Beacon."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping, Optional

import yaml

from .agent import Check, Registration, http_check, script_check, service_check_id, ttl_check


DEFAULT_AGENT_PORT = 8500


class ConfigError(ValueError):
    """Invalid configuration from a file, the environment or the command line."""


@dataclass
class ServiceConfig:
    """One service to register, with at most one inline check."""
    name: str = ""
    id: Optional[str] = None
    port: int = 0
    tags: list[str] = field(default_factory=list)

    # Check definition: ttl, or script/http with interval
    ttl: Optional[int] = None
    script: Optional[str] = None
    http: Optional[str] = None
    interval: int = 10

    # Local URL probed by the heartbeat loop to decide pass/fail
    health_url: Optional[str] = None

    def __post_init__(self):
        kinds = []
        if self.ttl is not None:
            kinds.append("ttl")
        if self.script:
            kinds.append("script")
        if self.http:
            kinds.append("http")
        if len(kinds) > 1:
            raise ConfigError(
                f"Service '{self.service_id}' defines more than one check: {', '.join(kinds)}"
            )

    @property
    def service_id(self) -> str:
        return self.id or self.name

    @property
    def check_id(self) -> str:
        """Id the agent gives the inline check of this service."""
        return service_check_id(self.service_id)

    @property
    def has_ttl_check(self) -> bool:
        return self.ttl is not None

    def build_check(self) -> Optional[Check]:
        if self.ttl is not None:
            return ttl_check(self.ttl)
        if self.http:
            return http_check(self.http, self.interval)
        if self.script:
            return script_check(self.script, self.interval)
        return None

    def to_registration(self) -> Registration:
        return Registration(
            name=self.name,
            id=self.id,
            port=self.port,
            check=self.build_check(),
            tags=list(self.tags),
        )


@dataclass
class BeaconConfig:
    # Agent connection
    agent_host: str = "localhost"
    agent_port: int = DEFAULT_AGENT_PORT
    scheme: str = "http"
    timeout: int = 10
    use_proxy: bool = False

    # Seconds between heartbeat cycles
    heartbeat_interval: int = 10

    # Services registered by `beacon register` and reported by `beacon heartbeat`
    services: list[ServiceConfig] = field(default_factory=list)


# Environment variables that override the built-in connection defaults
_ENV_OVERRIDES = {
    "BEACON_AGENT_HOST": ("agent_host", str),
    "BEACON_AGENT_PORT": ("agent_port", int),
}


def load_config(path: str | Path) -> BeaconConfig:
    """Load a BeaconConfig from a YAML file."""
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    # Extract and parse services list separately
    raw_services = data.pop("services", None) or []
    service_fields = {f.name for f in fields(ServiceConfig)}
    service_configs = []
    for entry in raw_services:
        sc_fields = {k: v for k, v in entry.items() if k in service_fields}
        service_configs.append(ServiceConfig(**sc_fields))

    valid_fields = {f.name for f in fields(BeaconConfig)} - {"services"}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    return BeaconConfig(**filtered, services=service_configs)


def apply_env_overrides(config: BeaconConfig,
                        environ: Optional[Mapping[str, str]] = None) -> BeaconConfig:
    """Overlay BEACON_* environment variables onto the config."""
    if environ is None:
        environ = os.environ
    for var, (name, convert) in _ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        try:
            setattr(config, name, convert(value))
        except ValueError as exc:
            raise ConfigError(f"Invalid {var}: {value!r}") from exc
    return config


def merge_cli_args(config: BeaconConfig, args) -> BeaconConfig:
    """Overlay CLI arguments onto an existing config. CLI values take precedence."""
    for f in fields(BeaconConfig):
        if f.name == "services":
            continue
        cli_val = getattr(args, f.name, None)
        if cli_val is not None:
            setattr(config, f.name, cli_val)
    return config


def config_to_yaml(config: BeaconConfig) -> str:
    """Serialize a BeaconConfig to YAML."""
    data: dict = {
        "agent_host": config.agent_host,
        "agent_port": config.agent_port,
        "scheme": config.scheme,
        "timeout": config.timeout,
    }
    if config.use_proxy:
        data["use_proxy"] = True
    data["heartbeat_interval"] = config.heartbeat_interval

    services_list = []
    for s in config.services:
        entry: dict = {"name": s.name}
        if s.id:
            entry["id"] = s.id
        entry["port"] = s.port
        if s.tags:
            entry["tags"] = list(s.tags)
        if s.ttl is not None:
            entry["ttl"] = s.ttl
        if s.script:
            entry["script"] = s.script
        if s.http:
            entry["http"] = s.http
        if s.script or s.http:
            entry["interval"] = s.interval
        if s.health_url:
            entry["health_url"] = s.health_url
        services_list.append(entry)
    data["services"] = services_list

    return yaml.dump(data, default_flow_style=False, sort_keys=False)
