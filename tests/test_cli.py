"""Tests for the beacon CLI against the stub agent."""

import json

import pytest

from beacon import cli


def _run(argv):
    try:
        cli.main(argv)
    except SystemExit as exc:
        return int(exc.code)
    return 0


def _agent_args(stub_agent):
    return ["--agent-host", "127.0.0.1", "--agent-port", str(stub_agent.port)]


def test_no_command_prints_help(capsys):
    assert _run([]) == 1
    assert "usage: beacon" in capsys.readouterr().out


def test_ping(stub_agent, capsys):
    assert _run(["ping", *_agent_args(stub_agent)]) == 0
    assert "is reachable" in capsys.readouterr().out


def test_ping_unreachable(capsys):
    assert _run(["ping", "--agent-host", "127.0.0.1", "--agent-port", "1", "--timeout", "1"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_register_and_list_services(stub_agent, capsys):
    rc = _run([
        "register", *_agent_args(stub_agent),
        "--name", "web", "--id", "web-1", "--port", "8080",
        "--tag", "v1", "--tag", "blue", "--ttl", "30",
    ])
    assert rc == 0

    assert _run(["services", *_agent_args(stub_agent), "--format", "json"]) == 0
    services = json.loads(capsys.readouterr().out)
    assert services["web-1"]["Port"] == 8080
    assert services["web-1"]["Tags"] == ["v1", "blue"]


def test_register_from_config(stub_agent, tmp_path):
    path = tmp_path / "beacon.yaml"
    path.write_text(
        "agent_host: 127.0.0.1\n"
        f"agent_port: {stub_agent.port}\n"
        "services:\n"
        "  - name: web\n"
        "    ttl: 30\n"
        "  - name: worker\n"
        "    script: /bin/true\n"
    )
    assert _run(["register", "--config", str(path)]) == 0
    assert set(stub_agent.services()) == {"web", "worker"}


def test_env_selects_agent(stub_agent, monkeypatch):
    monkeypatch.setenv("BEACON_AGENT_HOST", "127.0.0.1")
    monkeypatch.setenv("BEACON_AGENT_PORT", str(stub_agent.port))
    assert _run(["register", "--name", "web"]) == 0
    assert "web" in stub_agent.services()


def test_register_requires_a_service(stub_agent, capsys):
    assert _run(["register", *_agent_args(stub_agent)]) == 1
    assert "--name is required" in capsys.readouterr().err


def test_pass_and_checks(stub_agent, capsys):
    _run(["register", *_agent_args(stub_agent), "--name", "web", "--ttl", "30"])
    assert _run(["pass", *_agent_args(stub_agent), "web", "--note", "ok"]) == 0

    assert _run(["checks", *_agent_args(stub_agent)]) == 0
    assert "service:web  passing" in capsys.readouterr().out


def test_report_unknown_check_exits_2(stub_agent, capsys):
    assert _run(["fail", *_agent_args(stub_agent), "ghost"]) == 2
    assert "not registered" in capsys.readouterr().err


def test_report_with_explicit_check_id(stub_agent):
    assert _run([
        "check-register", *_agent_args(stub_agent), "--id", "mem", "--name", "Memory", "--ttl", "30",
    ]) == 0
    assert _run(["warn", *_agent_args(stub_agent), "ignored", "--check-id", "mem"]) == 0
    assert stub_agent.checks()["mem"]["Status"] == "warning"


def test_check_register_requires_definition(stub_agent, capsys):
    assert _run(["check-register", *_agent_args(stub_agent), "--id", "mem"]) == 1
    assert "--ttl or --script" in capsys.readouterr().err


def test_deregister_unknown_prints_agent_message(stub_agent, capsys):
    assert _run(["deregister", *_agent_args(stub_agent), "ghost"]) == 1
    assert 'Unknown service ID "ghost"' in capsys.readouterr().err


def test_check_deregister(stub_agent):
    stub_agent.register_check({"ID": "mem", "Name": "Memory", "TTL": "30s"})
    assert _run(["check-deregister", *_agent_args(stub_agent), "mem"]) == 0
    assert "mem" not in stub_agent.checks()


def test_members_self_and_force_leave(stub_agent, capsys):
    assert _run(["members", *_agent_args(stub_agent)]) == 0
    assert "stub-node  127.0.0.1:8301" in capsys.readouterr().out

    assert _run(["self", *_agent_args(stub_agent)]) == 0
    assert "stub-node  datacenter=dc1" in capsys.readouterr().out

    assert _run(["force-leave", *_agent_args(stub_agent), "node-9"]) == 0
    assert stub_agent.left_nodes == ["node-9"]


def test_heartbeat_registers_and_reports(stub_agent, tmp_path):
    path = tmp_path / "beacon.yaml"
    path.write_text(
        "agent_host: 127.0.0.1\n"
        f"agent_port: {stub_agent.port}\n"
        "services:\n"
        "  - name: web\n"
        "    ttl: 30\n"
    )
    assert _run(["heartbeat", "--config", str(path), "--register", "--cycles", "1"]) == 0
    assert stub_agent.checks()["service:web"]["Status"] == "passing"


def test_heartbeat_requires_services(capsys):
    assert _run(["heartbeat", "--cycles", "1"]) == 1
    assert "at least one service" in capsys.readouterr().err


@pytest.mark.parametrize("command", ["pass", "warn", "fail"])
def test_report_subcommands_exist(command, capsys):
    with pytest.raises(SystemExit):
        cli.main([command, "--help"])
    assert "service_id" in capsys.readouterr().out


def test_bad_env_port_is_reported(monkeypatch, capsys):
    monkeypatch.setenv("BEACON_AGENT_PORT", "eighty")
    assert _run(["services"]) == 1
    assert "Error: Invalid BEACON_AGENT_PORT: 'eighty'" in capsys.readouterr().err


def test_register_conflicting_checks_is_reported(capsys):
    assert _run(["register", "--name", "web", "--ttl", "30", "--script", "/bin/true"]) == 1
    assert "more than one check" in capsys.readouterr().err


def test_heartbeat_requires_a_ttl_service(tmp_path, capsys):
    path = tmp_path / "beacon.yaml"
    path.write_text("services:\n  - name: worker\n    script: /bin/true\n")
    assert _run(["heartbeat", "--config", str(path), "--cycles", "1"]) == 1
    assert "with a ttl check" in capsys.readouterr().err
