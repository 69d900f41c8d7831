"""Orchestration platform clients.

Platforms: InMemoryPlatform, K8sPlatform.
"""

from etcd_operator.platform.client import (
    InMemoryPlatform,
    Platform,
    matches_selector,
    parse_selector,
)
from etcd_operator.platform.k8s_platform import K8sPlatform

__all__ = [
    "InMemoryPlatform",
    "K8sPlatform",
    "Platform",
    "matches_selector",
    "parse_selector",
]
