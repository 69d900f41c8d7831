"""Member naming and peer-bootstrap addressing.

Member names are a pure function of (cluster name, index), so every
reconcile computes the same names and the same ``--initial-cluster``
string without any coordination.
"""

from __future__ import annotations

import re

from etcd_operator.errors import InvalidSpecError
from etcd_operator.models import ClusterPlan, Member

PEER_PORT = 2380
CLIENT_PORT = 2379

# Member names double as Service names, which must be DNS-1035 labels.
_DNS_LABEL = re.compile(r"^[a-z]([-a-z0-9]*[a-z0-9])?$")
_DNS_LABEL_MAX = 63


def member_name(cluster_name: str, index: int) -> str:
    return f"{cluster_name}-{index:04d}"


def peer_url(name: str) -> str:
    return f"http://{name}:{PEER_PORT}"


def client_url(name: str) -> str:
    return f"http://{name}:{CLIENT_PORT}"


def plan(cluster_name: str, size: int) -> ClusterPlan:
    """Compute the members of a cluster and their shared initial-cluster string.

    Members are ordered by index. Identical inputs always give an
    identical plan.

    Raises:
        InvalidSpecError: If *size* is not a positive integer or
            *cluster_name* does not produce valid member names.
    """
    if isinstance(size, bool) or not isinstance(size, int):
        raise InvalidSpecError(f"Cluster size must be an integer, got {size!r}")
    if size < 1:
        raise InvalidSpecError(
            f"Cluster {cluster_name!r} has size {size}; size must be at least 1"
        )
    _check_name(cluster_name, size)

    members = tuple(
        Member(
            index=i,
            name=member_name(cluster_name, i),
            peer_url=peer_url(member_name(cluster_name, i)),
            client_url=client_url(member_name(cluster_name, i)),
        )
        for i in range(size)
    )
    initial_cluster = ",".join(f"{m.name}={m.peer_url}" for m in members)

    return ClusterPlan(
        cluster_name=cluster_name,
        members=members,
        initial_cluster=initial_cluster,
    )


def _check_name(cluster_name: str, size: int) -> None:
    if not _DNS_LABEL.match(cluster_name):
        raise InvalidSpecError(
            f"Cluster name {cluster_name!r} is not a valid DNS label "
            "(lowercase letters, digits and '-', starting with a letter)"
        )
    longest = member_name(cluster_name, size - 1)
    if len(longest) > _DNS_LABEL_MAX:
        raise InvalidSpecError(
            f"Member name {longest!r} exceeds {_DNS_LABEL_MAX} characters"
        )
