"""TTL heartbeat loop: probe local services and report their state to the agent."""

import sys
import time
import urllib.error
import urllib.request
from typing import Callable, Iterable, Optional

from .agent import AgentClient, AgentError, CheckState, NotRegistered
from .config import ServiceConfig


def make_probe(timeout: float = 5) -> Callable[[Optional[str]], CheckState]:
    """Return a probe mapping a health URL to PASSING (HTTP 200) or CRITICAL.

    A service without a health URL is always reported as passing.
    """
    opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))

    def probe(url: Optional[str]) -> CheckState:
        if not url:
            return CheckState.PASSING
        try:
            with opener.open(url, timeout=timeout) as resp:
                return CheckState.PASSING if resp.status == 200 else CheckState.CRITICAL
        except (urllib.error.URLError, OSError):
            return CheckState.CRITICAL

    return probe


def _report(client: AgentClient, service: ServiceConfig, state: CheckState) -> None:
    """Report ``state``; re-register the service once if the agent lost its check."""
    note = f"{service.health_url or service.service_id} is {state.name.lower()}"
    try:
        client.report_state(service.check_id, state, note)
    except NotRegistered:
        print(
            f"[heartbeat] {service.service_id}: check {service.check_id} not registered,"
            " re-registering",
            file=sys.stderr,
        )
        client.register(service.to_registration())
        client.report_state(service.check_id, state, note)


def run_heartbeat(
    client: AgentClient,
    services: Iterable[ServiceConfig],
    interval: int = 10,
    max_cycles: Optional[int] = None,
    probe: Optional[Callable[[Optional[str]], CheckState]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, CheckState]:
    """Report every service's TTL check state each cycle.

    Runs forever unless *max_cycles* is given. Returns the last state
    reported per service id. Services without a TTL check are skipped,
    since the agent only accepts reports for TTL checks.
    """
    ttl_services = []
    for service in services:
        if service.has_ttl_check:
            ttl_services.append(service)
        else:
            print(
                f"[heartbeat] {service.service_id}: no TTL check configured, skipping",
                file=sys.stderr,
            )
    services = ttl_services
    if probe is None:
        probe = make_probe()
    last_states: dict[str, CheckState] = {}
    cycle = 0

    while max_cycles is None or cycle < max_cycles:
        cycle += 1
        for service in services:
            state = probe(service.health_url)
            try:
                _report(client, service, state)
            except AgentError as exc:
                print(f"[heartbeat] {service.service_id}: report failed: {exc}", file=sys.stderr)
                continue

            last_state = last_states.get(service.service_id)
            if state != last_state:
                print(
                    f"[heartbeat] {service.service_id}: {last_state.value if last_state else 'init'}"
                    f" -> {state.value}",
                    file=sys.stderr,
                )
                last_states[service.service_id] = state

        if max_cycles is None or cycle < max_cycles:
            sleep(interval)

    return last_states


if __name__ == "__main__":
    # Usage:
    #   python -m beacon.heartbeat --config FILE
    from .cli import main
    main(["heartbeat", *sys.argv[1:]])
