"""Tests for the Platform protocol, selectors and InMemoryPlatform."""

from __future__ import annotations

import pytest

from etcd_operator.errors import PlatformAPIError
from etcd_operator.platform import (
    InMemoryPlatform,
    K8sPlatform,
    Platform,
    matches_selector,
    parse_selector,
)


def _body(name: str, **labels: str) -> dict:
    return {"metadata": {"name": name, "labels": labels}}


class TestSelectors:
    def test_parse_single(self):
        assert parse_selector("etcd_cluster=test") == {"etcd_cluster": "test"}

    def test_parse_multiple_with_spaces(self):
        assert parse_selector("a=1, b = 2") == {"a": "1", "b": "2"}

    def test_parse_empty(self):
        assert parse_selector("") == {}

    def test_parse_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported"):
            parse_selector("environment in (prod)")

    def test_matches(self):
        labels = {"etcd_cluster": "test", "etcd_node": "test-0000"}
        assert matches_selector(labels, "etcd_cluster=test")
        assert not matches_selector(labels, "etcd_cluster=other")
        assert not matches_selector({}, "etcd_cluster=test")

    def test_empty_selector_matches_everything(self):
        assert matches_selector({"a": "1"}, "")


class TestProtocol:
    def test_in_memory_satisfies_protocol(self):
        assert isinstance(InMemoryPlatform(), Platform)

    def test_k8s_satisfies_protocol(self):
        assert isinstance(K8sPlatform("http://127.0.0.1:8080"), Platform)


class TestInMemoryPlatform:
    def test_create_and_list(self):
        p = InMemoryPlatform()
        assert p.create_pod("default", _body("a-0000", etcd_cluster="a")) == "a-0000"
        p.create_pod("default", _body("b-0000", etcd_cluster="b"))
        assert p.list_pods("default", "etcd_cluster=a") == ["a-0000"]

    def test_kinds_are_separate(self):
        p = InMemoryPlatform()
        p.create_service("default", _body("a-0000", etcd_cluster="a"))
        p.create_pod("default", _body("a-0000", etcd_cluster="a"))
        assert p.names("service") == ["a-0000"]
        assert p.names("pod") == ["a-0000"]

    def test_namespaces_are_separate(self):
        p = InMemoryPlatform()
        p.create_pod("other", _body("a-0000", etcd_cluster="a"))
        assert p.list_pods("default", "etcd_cluster=a") == []

    def test_duplicate_create_conflicts(self):
        p = InMemoryPlatform()
        p.create_service("default", _body("a-0000"))
        with pytest.raises(PlatformAPIError) as exc_info:
            p.create_service("default", _body("a-0000"))
        assert exc_info.value.status == 409

    def test_create_without_name(self):
        p = InMemoryPlatform()
        with pytest.raises(PlatformAPIError) as exc_info:
            p.create_pod("default", {"metadata": {}})
        assert exc_info.value.status == 422

    def test_delete(self):
        p = InMemoryPlatform()
        p.create_pod("default", _body("a-0000", etcd_cluster="a"))
        p.delete_pod("default", "a-0000")
        assert p.get("pod", "default", "a-0000") is None

    def test_delete_missing(self):
        p = InMemoryPlatform()
        with pytest.raises(PlatformAPIError) as exc_info:
            p.delete_service("default", "nope")
        assert exc_info.value.status == 404

    def test_stored_body_is_a_copy(self):
        p = InMemoryPlatform()
        body = _body("a-0000", etcd_cluster="a")
        p.create_pod("default", body)
        body["metadata"]["labels"]["etcd_cluster"] = "changed"
        assert p.list_pods("default", "etcd_cluster=a") == ["a-0000"]

    def test_call_log(self):
        p = InMemoryPlatform()
        p.create_service("default", _body("a-0000"))
        p.list_pods("default", "etcd_cluster=a")
        p.delete_service("default", "a-0000")
        assert p.calls == [
            ("create", "service", "default", "a-0000"),
            ("list", "pod", "default", "etcd_cluster=a"),
            ("delete", "service", "default", "a-0000"),
        ]

    def test_count_not_logged(self):
        p = InMemoryPlatform()
        p.create_service("default", _body("a-0000", etcd_cluster="a"))
        p.create_pod("default", _body("a-0000", etcd_cluster="a"))
        assert p.count("etcd_cluster=a") == 2
        assert [c[0] for c in p.calls] == ["create", "create"]
