"""Platform protocol and built-in InMemoryPlatform.

The Platform protocol is the operator's whole view of the orchestration
platform: create, list and delete Pods and Services in a namespace.
Any object with these methods satisfies the protocol; no inheritance
required.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Protocol, runtime_checkable

from etcd_operator.errors import PlatformAPIError

logger = logging.getLogger(__name__)

POD = "pod"
SERVICE = "service"


@runtime_checkable
class Platform(Protocol):
    """Protocol for orchestration platform clients.

    List methods return the names of matching objects. Every method
    raises PlatformAPIError on failure.
    """

    def create_service(self, namespace: str, body: dict[str, Any]) -> str:
        """Create a Service and return its name."""
        ...

    def create_pod(self, namespace: str, body: dict[str, Any]) -> str:
        """Create a Pod and return its name."""
        ...

    def list_services(self, namespace: str, label_selector: str) -> list[str]:
        ...

    def list_pods(self, namespace: str, label_selector: str) -> list[str]:
        ...

    def delete_service(self, namespace: str, name: str) -> None:
        ...

    def delete_pod(self, namespace: str, name: str) -> None:
        ...


def parse_selector(selector: str) -> dict[str, str]:
    """Parse an equality label selector (``k=v,k2=v2``) into a dict."""
    result: dict[str, str] = {}
    for part in selector.split(","):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise ValueError(f"Unsupported label selector term: {part!r}")
        key, value = part.split("=", 1)
        result[key.strip()] = value.strip()
    return result


def matches_selector(labels: dict[str, str], selector: str) -> bool:
    """Return True if *labels* contain every pair from *selector*."""
    wanted = parse_selector(selector)
    return all(labels.get(k) == v for k, v in wanted.items())


class InMemoryPlatform:
    """Platform backed by in-process dicts.

    Used for ``--dry-run`` and in tests. Behaves like the real API where
    the operator cares: duplicate names conflict (409), deleting a
    missing object is not found (404), lists honour label selectors.
    Every call is appended to ``calls`` as ``(verb, kind, namespace, arg)``.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, str, str]] = []

    # --- Platform protocol ---

    def create_service(self, namespace: str, body: dict[str, Any]) -> str:
        return self._create(SERVICE, namespace, body)

    def create_pod(self, namespace: str, body: dict[str, Any]) -> str:
        return self._create(POD, namespace, body)

    def list_services(self, namespace: str, label_selector: str) -> list[str]:
        return self._list(SERVICE, namespace, label_selector)

    def list_pods(self, namespace: str, label_selector: str) -> list[str]:
        return self._list(POD, namespace, label_selector)

    def delete_service(self, namespace: str, name: str) -> None:
        self._delete(SERVICE, namespace, name)

    def delete_pod(self, namespace: str, name: str) -> None:
        self._delete(POD, namespace, name)

    # --- Inspection ---

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any] | None:
        return self._objects.get((kind, namespace), {}).get(name)

    def names(self, kind: str, namespace: str = "default") -> list[str]:
        return sorted(self._objects.get((kind, namespace), {}))

    def count(self, label_selector: str = "", namespace: str = "default") -> int:
        """Number of Pods and Services matching *label_selector*."""
        return len(self._list(POD, namespace, label_selector, record=False)) + len(
            self._list(SERVICE, namespace, label_selector, record=False)
        )

    # --- Private ---

    def _create(self, kind: str, namespace: str, body: dict[str, Any]) -> str:
        name = body.get("metadata", {}).get("name")
        self.calls.append(("create", kind, namespace, name or ""))
        if not name:
            raise PlatformAPIError(
                f"create {kind}: metadata.name is required",
                status=422,
                reason="Unprocessable Entity",
            )
        bucket = self._objects.setdefault((kind, namespace), {})
        if name in bucket:
            raise PlatformAPIError(
                f"create {kind} {namespace}/{name}: already exists",
                status=409,
                reason="Conflict",
            )
        bucket[name] = copy.deepcopy(body)
        logger.debug("[in-memory] created %s %s/%s", kind, namespace, name)
        return name

    def _list(
        self,
        kind: str,
        namespace: str,
        label_selector: str,
        record: bool = True,
    ) -> list[str]:
        if record:
            self.calls.append(("list", kind, namespace, label_selector))
        bucket = self._objects.get((kind, namespace), {})
        return [
            name for name, body in bucket.items()
            if matches_selector(body.get("metadata", {}).get("labels") or {}, label_selector)
        ]

    def _delete(self, kind: str, namespace: str, name: str) -> None:
        self.calls.append(("delete", kind, namespace, name))
        bucket = self._objects.get((kind, namespace), {})
        if name not in bucket:
            raise PlatformAPIError(
                f"delete {kind} {namespace}/{name}: not found",
                status=404,
                reason="Not Found",
            )
        del bucket[name]
        logger.debug("[in-memory] deleted %s %s/%s", kind, namespace, name)
