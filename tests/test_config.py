"""Tests for YAML config loading and CLI/environment overlays."""

import argparse

import pytest
import yaml

from beacon.agent import HttpCheck, ScriptCheck, TtlCheck
from beacon.config import (
    BeaconConfig,
    ConfigError,
    ServiceConfig,
    apply_env_overrides,
    config_to_yaml,
    load_config,
    merge_cli_args,
)


CONFIG_YAML = """\
agent_host: agent.internal
agent_port: 8600
timeout: 3
unknown_key: ignored
services:
  - name: web
    id: web-1
    port: 8080
    tags: [v1, blue]
    ttl: 30
    health_url: http://localhost:8080/health
    owner: ignored
  - name: worker
    script: /usr/local/bin/check-worker
    interval: 20
"""


def test_load_config(tmp_path):
    path = tmp_path / "beacon.yaml"
    path.write_text(CONFIG_YAML)
    config = load_config(path)

    assert config.agent_host == "agent.internal"
    assert config.agent_port == 8600
    assert config.timeout == 3
    assert config.scheme == "http"
    assert [s.name for s in config.services] == ["web", "worker"]
    assert config.services[0].tags == ["v1", "blue"]
    assert config.services[1].interval == 20


def test_load_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    config = load_config(path)
    assert config == BeaconConfig()


def test_service_to_registration_picks_check_variant():
    assert isinstance(ServiceConfig(name="a", ttl=5).build_check(), TtlCheck)
    assert isinstance(ServiceConfig(name="a", http="http://x", interval=5).build_check(), HttpCheck)
    assert isinstance(ServiceConfig(name="a", script="/bin/x").build_check(), ScriptCheck)
    assert ServiceConfig(name="a").build_check() is None

    body = ServiceConfig(name="web", id="web-1", port=80, ttl=30).to_registration().to_dict()
    assert body == {"Name": "web", "Id": "web-1", "Port": 80, "Check": {"TTL": "30s"}, "Tags": []}


def test_service_check_id():
    assert ServiceConfig(name="web").check_id == "service:web"
    assert ServiceConfig(name="web", id="web-1").check_id == "service:web-1"


def test_merge_cli_args_precedence():
    config = BeaconConfig(agent_host="from-file", agent_port=8600)
    args = argparse.Namespace(agent_host="from-cli", agent_port=None, timeout=None)
    merge_cli_args(config, args)
    assert config.agent_host == "from-cli"
    assert config.agent_port == 8600


def test_env_overrides():
    config = apply_env_overrides(
        BeaconConfig(), {"BEACON_AGENT_HOST": "env-host", "BEACON_AGENT_PORT": "9500"},
    )
    assert config.agent_host == "env-host"
    assert config.agent_port == 9500


def test_env_overrides_ignore_empty_values():
    config = apply_env_overrides(BeaconConfig(), {"BEACON_AGENT_HOST": ""})
    assert config.agent_host == "localhost"


def test_config_to_yaml_reloads(tmp_path):
    path = tmp_path / "beacon.yaml"
    path.write_text(CONFIG_YAML)
    config = load_config(path)

    data = yaml.safe_load(config_to_yaml(config))
    assert data["agent_host"] == "agent.internal"
    assert data["services"][0] == {
        "name": "web",
        "id": "web-1",
        "port": 8080,
        "tags": ["v1", "blue"],
        "ttl": 30,
        "health_url": "http://localhost:8080/health",
    }
    assert data["services"][1]["interval"] == 20


@pytest.mark.parametrize("kwargs", [
    {"ttl": 30, "script": "/bin/true"},
    {"ttl": 30, "http": "http://web/health"},
    {"script": "/bin/true", "http": "http://web/health"},
])
def test_more_than_one_check_kind_rejected(kwargs):
    with pytest.raises(ConfigError, match="more than one check"):
        ServiceConfig(name="web", **kwargs)


def test_load_config_rejects_conflicting_checks(tmp_path):
    path = tmp_path / "beacon.yaml"
    path.write_text(
        "services:\n"
        "  - name: web\n"
        "    ttl: 30\n"
        "    http: http://localhost:8080/health\n"
    )
    with pytest.raises(ValueError, match="web"):
        load_config(path)


def test_env_override_with_bad_port():
    with pytest.raises(ConfigError, match="BEACON_AGENT_PORT"):
        apply_env_overrides(BeaconConfig(), {"BEACON_AGENT_PORT": "not-a-port"})
