"""ClusterProvisioner: creates the Services and Pods of a new etcd cluster."""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from etcd_operator.errors import PlatformAPIError
from etcd_operator.manifests import DEFAULT_IMAGE, build_member_pod, build_member_service
from etcd_operator.planner import plan

if TYPE_CHECKING:
    from etcd_operator.models import ClusterSpec
    from etcd_operator.platform.client import Platform

logger = logging.getLogger(__name__)


class RollbackPolicy(enum.StrEnum):
    LEAVE = "leave"
    DELETE = "delete"


class ClusterProvisioner:
    """Submits the member topology of a cluster to the platform.

    For each member, in index order: its Service, then its Pod. The
    initial-cluster string is computed once before anything is created,
    so every Pod gets the same one.

    If a create fails, the error propagates. With ``RollbackPolicy.LEAVE``
    the objects already created stay in place; with ``DELETE`` they are
    removed (newest first) before the error is re-raised.
    """

    def __init__(
        self,
        platform: Platform,
        namespace: str = "default",
        image: str = DEFAULT_IMAGE,
        rollback: RollbackPolicy = RollbackPolicy.LEAVE,
    ) -> None:
        self._platform = platform
        self._namespace = namespace
        self._image = image
        self._rollback = RollbackPolicy(rollback)

    def create_cluster(self, spec: ClusterSpec) -> list[str]:
        """Create every object of the cluster. Returns ``kind/name`` for each.

        Raises:
            InvalidSpecError: The size or name cannot be planned.
            PlatformAPIError: A create call failed.
        """
        cluster_plan = plan(spec.name, spec.size)
        logger.info(
            "Creating cluster %s with %d members", spec.name, cluster_plan.size,
        )

        created: list[tuple[str, str]] = []
        try:
            for member in cluster_plan.members:
                svc = build_member_service(member, spec.name)
                self._platform.create_service(self._namespace, svc)
                created.append(("service", member.name))

                pod = build_member_pod(
                    member, spec.name, cluster_plan.initial_cluster, self._image,
                )
                self._platform.create_pod(self._namespace, pod)
                created.append(("pod", member.name))
        except PlatformAPIError:
            if self._rollback is RollbackPolicy.DELETE:
                self._roll_back(spec.name, created)
            else:
                logger.warning(
                    "Cluster %s left partially provisioned (%d objects created)",
                    spec.name, len(created),
                )
            raise

        logger.info("Cluster %s created", spec.name)
        return [f"{kind}/{name}" for kind, name in created]

    def _roll_back(self, cluster_name: str, created: list[tuple[str, str]]) -> None:
        """Best-effort delete of objects created by the failed call."""
        logger.warning(
            "Rolling back %d objects of cluster %s", len(created), cluster_name,
        )
        for kind, name in reversed(created):
            delete = (
                self._platform.delete_pod if kind == "pod"
                else self._platform.delete_service
            )
            try:
                delete(self._namespace, name)
            except PlatformAPIError as exc:
                logger.error("Rollback of %s/%s failed: %s", kind, name, exc)
