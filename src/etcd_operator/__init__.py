"""etcd-operator: runs etcd clusters declared as EtcdCluster custom resources."""

__version__ = "0.1.0"

from etcd_operator.config import OperatorConfig, find_config, load_config
from etcd_operator.controller import Controller, ErrorPolicy, ReconcileError
from etcd_operator.decommissioner import ClusterDecommissioner
from etcd_operator.errors import (
    DecodeError,
    InvalidSpecError,
    OperatorError,
    PlatformAPIError,
    WatchConnectionError,
)
from etcd_operator.models import (
    ChangeEvent,
    ClusterPlan,
    ClusterSpec,
    EventType,
    Member,
    ObjectMeta,
    ReconcileResult,
    ReconcileStatus,
)
from etcd_operator.planner import plan
from etcd_operator.platform import InMemoryPlatform, K8sPlatform, Platform
from etcd_operator.provisioner import ClusterProvisioner, RollbackPolicy
from etcd_operator.watch import DecodeErrorPolicy, WatchStream, watch_url

__all__ = [
    "ChangeEvent",
    "ClusterDecommissioner",
    "ClusterPlan",
    "ClusterProvisioner",
    "ClusterSpec",
    "Controller",
    "DecodeError",
    "DecodeErrorPolicy",
    "ErrorPolicy",
    "EventType",
    "find_config",
    "InMemoryPlatform",
    "InvalidSpecError",
    "K8sPlatform",
    "load_config",
    "Member",
    "ObjectMeta",
    "OperatorConfig",
    "OperatorError",
    "plan",
    "Platform",
    "PlatformAPIError",
    "ReconcileError",
    "ReconcileResult",
    "ReconcileStatus",
    "RollbackPolicy",
    "WatchConnectionError",
    "WatchStream",
    "watch_url",
    "__version__",
]
