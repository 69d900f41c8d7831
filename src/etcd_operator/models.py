"""Core data models for the etcd operator.

Defines the schemas for:
- EtcdCluster custom resources (the declared cluster)
- Watch events (what changed)
- Members and cluster plans (derived topology)
- Reconcile results (what the controller did about an event)
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# --- Enums ---


class EventType(enum.StrEnum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"


class ReconcileStatus(enum.StrEnum):
    APPLIED = "applied"
    IGNORED = "ignored"
    FAILED = "failed"


# --- Custom resource ---


class ObjectMeta(BaseModel):
    """Resource metadata. Only the fields the operator reads are kept."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    namespace: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)


class ClusterSpec(BaseModel):
    """An EtcdCluster resource: the desired cluster, declared by a user.

    ``size`` is not range-checked here so that a DELETED event for a
    malformed resource still decodes; the planner rejects ``size < 1``.

    ``kind`` and ``apiVersion`` are read but never acted on. A resource
    that omits them decodes with the EtcdCluster defaults, the same way
    the watch treats any other missing optional field.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    kind: str = "EtcdCluster"
    api_version: str = Field("coreos.com/v1", alias="apiVersion")
    metadata: ObjectMeta
    size: int

    @property
    def name(self) -> str:
        return self.metadata.name


class ChangeEvent(BaseModel):
    """A single watch event.

    Accepts both ``Type``/``Object`` and the platform's lowercase
    ``type``/``object`` keys.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: EventType = Field(validation_alias=AliasChoices("Type", "type"))
    object: ClusterSpec = Field(validation_alias=AliasChoices("Object", "object"))


# --- Derived topology ---


class Member(BaseModel):
    """One etcd member. Fully determined by (cluster name, index)."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    name: str
    peer_url: str
    client_url: str


class ClusterPlan(BaseModel):
    """Members of a cluster plus the bootstrap string they all share."""

    model_config = ConfigDict(frozen=True)

    cluster_name: str
    members: tuple[Member, ...]
    initial_cluster: str

    @property
    def size(self) -> int:
        return len(self.members)


# --- Reconcile outcome ---


class ReconcileResult(BaseModel):
    """Outcome of reconciling one ChangeEvent.

    ``aborted`` is set when the failure stopped the controller under
    ``ErrorPolicy.ABORT``; it says nothing about the error class.
    """

    event_type: EventType
    cluster: str
    status: ReconcileStatus
    created: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    error: str | None = None
    aborted: bool = False
    duration_ms: float | None = None
    finished_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
