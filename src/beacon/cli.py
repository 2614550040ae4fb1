"""CLI entry point for Beacon."""

import argparse
import json
import sys
import time

from .agent import (
    AgentClient,
    AgentError,
    CheckState,
    HealthCheckDescriptor,
    NotRegistered,
    StubAgent,
    script_check,
    start_stub_agent,
    ttl_check,
)
from .config import (
    BeaconConfig,
    ConfigError,
    ServiceConfig,
    apply_env_overrides,
    load_config,
    merge_cli_args,
)
from .heartbeat import run_heartbeat


def _add_agent_args(parser: argparse.ArgumentParser) -> None:
    """Add agent connection flags shared by every subcommand."""
    parser.add_argument("--config", type=str, help="Path to YAML config file")
    parser.add_argument(
        "--agent-host", type=str, dest="agent_host",
        help="Hostname of the agent (default: localhost)",
    )
    parser.add_argument(
        "--agent-port", type=int, dest="agent_port",
        help="HTTP port of the agent (default: 8500)",
    )
    parser.add_argument("--scheme", choices=["http", "https"], help="URL scheme (default: http)")
    parser.add_argument("--timeout", type=int, help="Request timeout in seconds (default: 10)")
    parser.add_argument(
        "--format", choices=["text", "json"], default="text",
        help="Output format (default: text)",
    )


def _build_config(args) -> BeaconConfig:
    """Build a BeaconConfig from a config file, environment and CLI overrides."""
    if getattr(args, "config", None):
        config = load_config(args.config)
    else:
        config = BeaconConfig()
    apply_env_overrides(config)
    merge_cli_args(config, args)
    return config


def _client(args) -> AgentClient:
    return AgentClient.from_config(_build_config(args))


def _print_json(data) -> None:
    print(json.dumps(data, indent=2))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def cmd_ping(args) -> None:
    config = _build_config(args)
    AgentClient.from_config(config).ping()
    print(f"Agent at {config.agent_host}:{config.agent_port} is reachable.")


def cmd_self(args) -> None:
    info = _client(args).get_agent_self()
    if args.format == "json":
        _print_json(info.to_dict())
    else:
        print(f"{info.node_name}  datacenter={info.datacenter}")


def cmd_services(args) -> None:
    services = _client(args).get_services()
    if args.format == "json":
        _print_json({sid: s.to_dict() for sid, s in services.items()})
        return
    lines = [
        f"{sid}  {s.service}  port={s.port}  tags={','.join(s.tags)}"
        for sid, s in sorted(services.items())
    ]
    print("\n".join(lines) if lines else "(no services)")


def cmd_checks(args) -> None:
    checks = _client(args).get_checks()
    if args.format == "json":
        _print_json({cid: c.to_dict() for cid, c in checks.items()})
        return
    lines = [f"{cid}  {c.status}  {c.name}" for cid, c in sorted(checks.items())]
    print("\n".join(lines) if lines else "(no checks)")


def cmd_members(args) -> None:
    members = _client(args).get_members()
    if args.format == "json":
        _print_json([m.to_dict() for m in members])
        return
    lines = [f"{m.name}  {m.address}:{m.port}  status={m.status}" for m in members]
    print("\n".join(lines) if lines else "(no members)")


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def _services_from_args(args, config: BeaconConfig) -> list[ServiceConfig]:
    """Services named on the command line, or else those in the config file."""
    if args.name:
        return [ServiceConfig(
            name=args.name,
            id=args.id,
            port=args.port or 0,
            tags=list(args.tag or []),
            ttl=args.ttl,
            script=args.script,
            http=args.http,
            interval=args.interval,
        )]
    return list(config.services)


def cmd_register(args) -> None:
    config = _build_config(args)
    services = _services_from_args(args, config)
    if not services:
        print("Error: --name is required (or provide a 'services' list in the config file).", file=sys.stderr)
        sys.exit(1)

    client = AgentClient.from_config(config)
    for service in services:
        client.register(service.to_registration())
        print(f"Registered service {service.service_id}", file=sys.stderr)


def cmd_deregister(args) -> None:
    _client(args).deregister(args.service_id)
    print(f"Deregistered service {args.service_id}", file=sys.stderr)


def cmd_check_register(args) -> None:
    if args.ttl is not None:
        definition = ttl_check(args.ttl)
    elif args.script:
        definition = script_check(args.script, args.interval)
    else:
        print("Error: one of --ttl or --script is required.", file=sys.stderr)
        sys.exit(1)

    descriptor = HealthCheckDescriptor(
        id=args.id, name=args.name or args.id, definition=definition, notes=args.notes,
    )
    _client(args).register_check(descriptor)
    print(f"Registered check {descriptor.id}", file=sys.stderr)


def cmd_check_deregister(args) -> None:
    _client(args).deregister_check(args.check_id)
    print(f"Deregistered check {args.check_id}", file=sys.stderr)


def cmd_force_leave(args) -> None:
    _client(args).force_leave(args.node)


# ---------------------------------------------------------------------------
# Health reports
# ---------------------------------------------------------------------------

def cmd_report(args) -> None:
    client = _client(args)
    state = CheckState(args.command)
    if args.check_id:
        client.report_state(args.check_id, state, args.note)
    else:
        client.check_ttl(args.service_id, state, args.note)


def cmd_heartbeat(args) -> None:
    config = _build_config(args)
    if not any(s.has_ttl_check for s in config.services):
        print("Error: the config file must list at least one service with a ttl check.", file=sys.stderr)
        sys.exit(1)
    client = AgentClient.from_config(config)
    if args.register:
        for service in config.services:
            client.register(service.to_registration())
    run_heartbeat(
        client, config.services,
        interval=args.interval or config.heartbeat_interval,
        max_cycles=args.cycles,
    )


def cmd_stub_agent(args) -> None:
    agent = StubAgent(node_name=args.node_name)
    server = start_stub_agent(agent, host=args.listen_host, port=args.listen_port)
    host, port = server.server_address[:2]
    print(f"Stub agent listening on {host}:{port}", file=sys.stderr)
    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        server.shutdown()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="beacon",
        description="Beacon: client for the local service-registry agent",
    )
    subparsers = parser.add_subparsers(dest="command")

    for name, func, help_text in [
        ("ping", cmd_ping, "Check that the agent is reachable"),
        ("self", cmd_self, "Show the agent's configuration"),
        ("services", cmd_services, "List services registered with the agent"),
        ("checks", cmd_checks, "List checks registered with the agent"),
        ("members", cmd_members, "List members of the gossip pool"),
    ]:
        sub = subparsers.add_parser(name, help=help_text)
        _add_agent_args(sub)
        sub.set_defaults(func=func)

    # register
    reg = subparsers.add_parser("register", help="Register services with the agent")
    _add_agent_args(reg)
    reg.add_argument("--name", type=str, help="Service name (default: services from --config)")
    reg.add_argument("--id", type=str, help="Service id (default: the name)")
    reg.add_argument("--port", type=int, help="Service port")
    reg.add_argument("--tag", action="append", help="Service tag (repeatable)")
    reg.add_argument("--ttl", type=int, help="Attach a TTL check of this many seconds")
    reg.add_argument("--script", type=str, help="Attach a script check")
    reg.add_argument("--http", type=str, help="Attach an HTTP check polling this URL")
    reg.add_argument(
        "--interval", type=int, default=10,
        help="Script/HTTP check interval in seconds (default: 10)",
    )
    reg.set_defaults(func=cmd_register)

    # deregister
    dereg = subparsers.add_parser("deregister", help="Deregister a service")
    _add_agent_args(dereg)
    dereg.add_argument("service_id", type=str, help="Service identifier")
    dereg.set_defaults(func=cmd_deregister)

    # check-register
    chk = subparsers.add_parser("check-register", help="Register a standalone check")
    _add_agent_args(chk)
    chk.add_argument("--id", type=str, required=True, help="Check id, unique per agent")
    chk.add_argument("--name", type=str, help="Check name (default: the id)")
    chk.add_argument("--ttl", type=int, help="TTL in seconds")
    chk.add_argument("--script", type=str, help="Health script")
    chk.add_argument(
        "--interval", type=int, default=10,
        help="Script interval in seconds (default: 10)",
    )
    chk.add_argument("--notes", type=str, help="Human readable notes")
    chk.set_defaults(func=cmd_check_register)

    # check-deregister
    chk_dereg = subparsers.add_parser("check-deregister", help="Deregister a standalone check")
    _add_agent_args(chk_dereg)
    chk_dereg.add_argument("check_id", type=str, help="Check identifier")
    chk_dereg.set_defaults(func=cmd_check_deregister)

    # pass / warn / fail
    for state in CheckState:
        rep = subparsers.add_parser(state.path, help=f"Report a TTL check as {state.name.lower()}")
        _add_agent_args(rep)
        rep.add_argument("service_id", type=str, help="Service whose TTL check to update")
        rep.add_argument("--note", type=str, help="Note attached to the report")
        rep.add_argument(
            "--check-id", type=str, dest="check_id",
            help="Report on this check id instead of service:<service_id>",
        )
        rep.set_defaults(func=cmd_report)

    # force-leave
    leave = subparsers.add_parser("force-leave", help="Force a node into the left state")
    _add_agent_args(leave)
    leave.add_argument("node", type=str, help="Node name")
    leave.set_defaults(func=cmd_force_leave)

    # heartbeat
    hb = subparsers.add_parser("heartbeat", help="Report TTL checks for configured services")
    _add_agent_args(hb)
    hb.add_argument("--interval", type=int, help="Seconds between cycles (default: from config)")
    hb.add_argument("--cycles", type=int, help="Stop after this many cycles")
    hb.add_argument(
        "--register", action="store_true",
        help="Register the configured services before the first cycle",
    )
    hb.set_defaults(func=cmd_heartbeat)

    # stub-agent
    stub = subparsers.add_parser("stub-agent", help="Run an in-process stub agent")
    stub.add_argument("--listen-host", type=str, default="127.0.0.1", dest="listen_host")
    stub.add_argument("--listen-port", type=int, default=8500, dest="listen_port")
    stub.add_argument("--node-name", type=str, default="stub-node", dest="node_name")
    stub.set_defaults(func=cmd_stub_agent)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except NotRegistered as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except (AgentError, ConfigError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
