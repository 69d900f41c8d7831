"""Body builders for the platform objects that make up one etcd member.

Bodies are plain dicts in the platform's JSON shape; the kubernetes
client accepts them as-is for ``create_namespaced_*`` calls.
"""

from __future__ import annotations

from typing import Any

from etcd_operator.models import Member
from etcd_operator.planner import CLIENT_PORT, PEER_PORT

DEFAULT_IMAGE = "gcr.io/coreos-k8s-scale-testing/etcd-amd64:3.0.4"
ETCD_BINARY = "/usr/local/bin/etcd"

CLUSTER_LABEL = "etcd_cluster"
NODE_LABEL = "etcd_node"


def member_labels(member: Member, cluster_name: str) -> dict[str, str]:
    return {
        NODE_LABEL: member.name,
        CLUSTER_LABEL: cluster_name,
    }


def cluster_selector(cluster_name: str) -> str:
    """Label selector matching every object of one cluster."""
    return f"{CLUSTER_LABEL}={cluster_name}"


def build_member_service(member: Member, cluster_name: str) -> dict[str, Any]:
    """Service that gives a member its stable peer address."""
    labels = member_labels(member, cluster_name)
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": member.name,
            "labels": dict(labels),
        },
        "spec": {
            "ports": [{
                "name": "server",
                "port": PEER_PORT,
                "targetPort": PEER_PORT,
                "protocol": "TCP",
            }],
            "selector": dict(labels),
        },
    }


def member_command(member: Member, initial_cluster: str) -> list[str]:
    """etcd command line for a founding member of a new cluster."""
    return [
        ETCD_BINARY,
        "--name", member.name,
        "--initial-advertise-peer-urls", member.peer_url,
        "--listen-peer-urls", f"http://0.0.0.0:{PEER_PORT}",
        "--listen-client-urls", f"http://0.0.0.0:{CLIENT_PORT}",
        "--advertise-client-urls", member.client_url,
        "--initial-cluster", initial_cluster,
        "--initial-cluster-state", "new",
    ]


def build_member_pod(
    member: Member,
    cluster_name: str,
    initial_cluster: str,
    image: str = DEFAULT_IMAGE,
) -> dict[str, Any]:
    """Pod running one etcd member."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": member.name,
            "labels": {"app": "etcd", **member_labels(member, cluster_name)},
        },
        "spec": {
            "containers": [{
                "name": member.name,
                "image": image,
                "command": member_command(member, initial_cluster),
                "ports": [{
                    "name": "server",
                    "containerPort": PEER_PORT,
                    "protocol": "TCP",
                }],
            }],
            "restartPolicy": "Never",
        },
    }
