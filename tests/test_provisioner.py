"""Tests for ClusterProvisioner against the in-memory platform."""

from __future__ import annotations

from typing import Any

import pytest

from etcd_operator.errors import InvalidSpecError, PlatformAPIError
from etcd_operator.models import ClusterSpec, ObjectMeta
from etcd_operator.platform import InMemoryPlatform
from etcd_operator.provisioner import ClusterProvisioner, RollbackPolicy

EXPECTED_TEST_3 = (
    "test-0000=http://test-0000:2380,"
    "test-0001=http://test-0001:2380,"
    "test-0002=http://test-0002:2380"
)


def _spec(name: str = "test", size: int = 3) -> ClusterSpec:
    return ClusterSpec(metadata=ObjectMeta(name=name), size=size)


def _initial_cluster(pod: dict[str, Any]) -> str:
    cmd = pod["spec"]["containers"][0]["command"]
    return cmd[cmd.index("--initial-cluster") + 1]


class FailingPlatform(InMemoryPlatform):
    """InMemoryPlatform that fails to create one named object."""

    def __init__(
        self,
        fail_pod: str | None = None,
        fail_service: str | None = None,
        fail_deletes: bool = False,
    ) -> None:
        super().__init__()
        self._fail_pod = fail_pod
        self._fail_service = fail_service
        self._fail_deletes = fail_deletes

    def create_pod(self, namespace: str, body: dict[str, Any]) -> str:
        if body["metadata"]["name"] == self._fail_pod:
            raise PlatformAPIError("create pod failed", status=500)
        return super().create_pod(namespace, body)

    def create_service(self, namespace: str, body: dict[str, Any]) -> str:
        if body["metadata"]["name"] == self._fail_service:
            raise PlatformAPIError("create service failed", status=500)
        return super().create_service(namespace, body)

    def delete_pod(self, namespace: str, name: str) -> None:
        if self._fail_deletes:
            raise PlatformAPIError("delete pod failed", status=500)
        super().delete_pod(namespace, name)


class TestCreateCluster:
    def test_example_cluster_calls(self):
        platform = InMemoryPlatform()
        created = ClusterProvisioner(platform).create_cluster(_spec())

        assert created == [
            "service/test-0000", "pod/test-0000",
            "service/test-0001", "pod/test-0001",
            "service/test-0002", "pod/test-0002",
        ]
        assert platform.calls == [
            ("create", "service", "default", "test-0000"),
            ("create", "pod", "default", "test-0000"),
            ("create", "service", "default", "test-0001"),
            ("create", "pod", "default", "test-0001"),
            ("create", "service", "default", "test-0002"),
            ("create", "pod", "default", "test-0002"),
        ]

    def test_every_member_gets_same_initial_cluster(self):
        platform = InMemoryPlatform()
        ClusterProvisioner(platform).create_cluster(_spec())

        strings = {
            _initial_cluster(platform.get("pod", "default", name))
            for name in platform.names("pod")
        }
        assert strings == {EXPECTED_TEST_3}

    def test_services_expose_peer_port(self):
        platform = InMemoryPlatform()
        ClusterProvisioner(platform).create_cluster(_spec())
        for name in platform.names("service"):
            svc = platform.get("service", "default", name)
            assert svc["spec"]["ports"][0]["port"] == 2380

    def test_bootstrap_state_new(self):
        platform = InMemoryPlatform()
        ClusterProvisioner(platform).create_cluster(_spec(size=1))
        cmd = platform.get("pod", "default", "test-0000")["spec"]["containers"][0]["command"]
        assert cmd[cmd.index("--initial-cluster-state") + 1] == "new"

    def test_namespace_and_image(self):
        platform = InMemoryPlatform()
        ClusterProvisioner(platform, namespace="etcd", image="etcd:3.5").create_cluster(
            _spec(size=1),
        )
        pod = platform.get("pod", "etcd", "test-0000")
        assert pod["spec"]["containers"][0]["image"] == "etcd:3.5"
        assert platform.names("pod", "default") == []

    def test_invalid_size_creates_nothing(self):
        platform = InMemoryPlatform()
        with pytest.raises(InvalidSpecError):
            ClusterProvisioner(platform).create_cluster(_spec(size=0))
        assert platform.calls == []


class TestPartialFailure:
    def test_leave_policy_keeps_created_objects(self):
        platform = FailingPlatform(fail_pod="test-0001")
        with pytest.raises(PlatformAPIError):
            ClusterProvisioner(platform).create_cluster(_spec())

        assert platform.names("service") == ["test-0000", "test-0001"]
        assert platform.names("pod") == ["test-0000"]

    def test_stops_at_first_failure(self):
        platform = FailingPlatform(fail_service="test-0000")
        with pytest.raises(PlatformAPIError):
            ClusterProvisioner(platform).create_cluster(_spec())
        assert platform.calls == []

    def test_delete_policy_rolls_back_in_reverse(self):
        platform = FailingPlatform(fail_pod="test-0001")
        provisioner = ClusterProvisioner(platform, rollback=RollbackPolicy.DELETE)
        with pytest.raises(PlatformAPIError, match="create pod failed"):
            provisioner.create_cluster(_spec())

        assert platform.count("etcd_cluster=test") == 0
        deletes = [c for c in platform.calls if c[0] == "delete"]
        assert deletes == [
            ("delete", "service", "default", "test-0001"),
            ("delete", "pod", "default", "test-0000"),
            ("delete", "service", "default", "test-0000"),
        ]

    def test_rollback_failure_keeps_original_error(self):
        platform = FailingPlatform(fail_pod="test-0001", fail_deletes=True)
        provisioner = ClusterProvisioner(platform, rollback="delete")
        with pytest.raises(PlatformAPIError, match="create pod failed"):
            provisioner.create_cluster(_spec())
        # Services were still removed even though pod deletes failed
        assert platform.names("service") == []
        assert platform.names("pod") == ["test-0000"]
