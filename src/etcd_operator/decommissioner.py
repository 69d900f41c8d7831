"""ClusterDecommissioner: removes every platform object of a deleted cluster."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from etcd_operator.manifests import cluster_selector

if TYPE_CHECKING:
    from etcd_operator.models import ClusterSpec
    from etcd_operator.platform.client import Platform

logger = logging.getLogger(__name__)


class ClusterDecommissioner:
    """Finds objects by the ``etcd_cluster`` label and deletes them.

    Pods go first, then Services. Objects are looked up fresh on every
    call; nothing is remembered from provisioning. Any failed list or
    delete propagates and the teardown stops where it is.
    """

    def __init__(self, platform: Platform, namespace: str = "default") -> None:
        self._platform = platform
        self._namespace = namespace

    def delete_cluster(self, spec: ClusterSpec) -> list[str]:
        """Delete the cluster's Pods and Services. Returns ``kind/name`` for each."""
        selector = cluster_selector(spec.name)
        logger.info("Deleting cluster %s (%s)", spec.name, selector)

        deleted: list[str] = []
        for name in self._platform.list_pods(self._namespace, selector):
            self._platform.delete_pod(self._namespace, name)
            deleted.append(f"pod/{name}")

        for name in self._platform.list_services(self._namespace, selector):
            self._platform.delete_service(self._namespace, name)
            deleted.append(f"service/{name}")

        logger.info("Cluster %s deleted (%d objects)", spec.name, len(deleted))
        return deleted
