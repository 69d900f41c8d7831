#!/usr/bin/env python3
"""Demo: reconcile an EtcdCluster lifecycle against an in-memory platform.

Feeds ADDED, MODIFIED and DELETED events for two clusters through the
controller and prints what was created and removed. No API server needed.

Run from the project root (after ``pip install -e .``):
    python examples/demo_reconcile.py
"""

from __future__ import annotations

from etcd_operator import (
    ChangeEvent,
    ClusterDecommissioner,
    ClusterProvisioner,
    ClusterSpec,
    Controller,
    EventType,
    InMemoryPlatform,
    ObjectMeta,
    ReconcileStatus,
)

# ANSI colors
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"

COLORS = {
    ReconcileStatus.APPLIED: GREEN,
    ReconcileStatus.IGNORED: DIM,
    ReconcileStatus.FAILED: RED,
}


class ListStream:
    def __init__(self, events: list[ChangeEvent]) -> None:
        self._events = events

    def start(self) -> None:
        pass

    def __iter__(self):
        return iter(self._events)

    def close(self) -> None:
        pass


def _event(event_type: EventType, name: str, size: int) -> ChangeEvent:
    return ChangeEvent(
        type=event_type,
        object=ClusterSpec(metadata=ObjectMeta(name=name), size=size),
    )


def main() -> None:
    platform = InMemoryPlatform()
    events = [
        _event(EventType.ADDED, "alpha", 3),
        _event(EventType.ADDED, "beta", 1),
        _event(EventType.MODIFIED, "alpha", 5),
        _event(EventType.DELETED, "alpha", 3),
    ]
    controller = Controller(
        ListStream(events),
        ClusterProvisioner(platform),
        ClusterDecommissioner(platform),
    )
    controller.run()

    print(f"{BOLD}Reconciled events{RESET}")
    for r in controller.history:
        color = COLORS[r.status]
        changed = len(r.created) + len(r.deleted)
        print(f"  {r.event_type:<9} {r.cluster:<6} {color}{r.status:<8}{RESET} {changed} objects")

    print(f"\n{BOLD}Remaining objects{RESET}")
    for kind in ("service", "pod"):
        print(f"  {kind + 's':<9} {', '.join(platform.names(kind)) or '-'}")

    pod = platform.get("pod", "default", "beta-0000")
    cmd = pod["spec"]["containers"][0]["command"]
    print(f"\n{BOLD}beta-0000 --initial-cluster{RESET} {cmd[cmd.index('--initial-cluster') + 1]}")


if __name__ == "__main__":
    main()
