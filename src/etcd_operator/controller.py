"""Controller: the reconciliation loop.

The controller consumes the watch stream one item at a time and turns
each ChangeEvent into platform calls:

  ADDED     -> ClusterProvisioner.create_cluster
  DELETED   -> ClusterDecommissioner.delete_cluster
  MODIFIED  -> ignored (resizing is not supported)

A reconcile finishes completely before the next event is received, so
two clusters are never provisioned concurrently and a delete can never
overtake the create of the same cluster.

Failure handling:
  - fatal watch errors (connection lost, undecodable frame) stop the loop
    and propagate to the caller
  - a failed reconcile is recorded as a FAILED ReconcileResult, then
    either aborts the loop (``ErrorPolicy.ABORT``) or is logged and
    skipped (``ErrorPolicy.CONTINUE``)
"""

from __future__ import annotations

import collections
import enum
import logging
import threading
import time
from collections.abc import Iterator
from typing import TYPE_CHECKING, Protocol

from etcd_operator.errors import OperatorError
from etcd_operator.models import (
    ChangeEvent,
    EventType,
    ReconcileResult,
    ReconcileStatus,
)

if TYPE_CHECKING:
    from etcd_operator.decommissioner import ClusterDecommissioner
    from etcd_operator.provisioner import ClusterProvisioner
    from etcd_operator.watch.stream import WatchItem

logger = logging.getLogger(__name__)


class ErrorPolicy(enum.StrEnum):
    ABORT = "abort"
    CONTINUE = "continue"


class ReconcileError(OperatorError):
    """A reconcile failed and the error policy is ABORT."""

    fatal = True

    def __init__(self, result: ReconcileResult) -> None:
        super().__init__(
            f"{result.event_type} {result.cluster} failed: {result.error}"
        )
        self.result = result


class EventSource(Protocol):
    """What the controller needs from a watch stream."""

    def start(self) -> None: ...

    def __iter__(self) -> Iterator[WatchItem]: ...

    def close(self) -> None: ...


class Controller:
    """Reconciles EtcdCluster events against the platform.

    ``run()`` blocks until the stream fails or ``stop()`` is called from
    another thread (or a signal handler).
    """

    def __init__(
        self,
        stream: EventSource,
        provisioner: ClusterProvisioner,
        decommissioner: ClusterDecommissioner,
        on_error: ErrorPolicy = ErrorPolicy.ABORT,
        history_size: int = 100,
    ) -> None:
        self._stream = stream
        self._provisioner = provisioner
        self._decommissioner = decommissioner
        self._on_error = ErrorPolicy(on_error)
        self._stop = threading.Event()
        self._history: collections.deque[ReconcileResult] = collections.deque(
            maxlen=history_size,
        )

    @property
    def history(self) -> list[ReconcileResult]:
        """Results of the most recent reconciles, oldest first."""
        return list(self._history)

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(self) -> None:
        """Consume the watch stream until it fails or the controller is stopped.

        Raises:
            WatchConnectionError: The watch could not be opened or broke.
            DecodeError: A frame could not be decoded (abort policy).
            ReconcileError: A reconcile failed under ``ErrorPolicy.ABORT``.
        """
        if self._stop.is_set():
            return

        self._stream.start()
        logger.info("etcd cluster controller starts running...")
        try:
            for item in self._stream:
                if self._stop.is_set():
                    break
                if isinstance(item, OperatorError):
                    logger.error("Watch failed: %s", item)
                    raise item

                result, error = self._reconcile(item)
                if error is not None and self._on_error is ErrorPolicy.ABORT:
                    raise ReconcileError(result) from error
        finally:
            self._stream.close()
        logger.info("etcd cluster controller stopped")

    def stop(self) -> None:
        """Request shutdown. Safe to call from any thread, more than once."""
        if not self._stop.is_set():
            logger.info("Stopping etcd cluster controller")
        self._stop.set()
        self._stream.close()

    def reconcile(self, event: ChangeEvent) -> ReconcileResult:
        """Apply one event. Never raises for platform or spec errors;
        those are captured in the result's status and error fields.
        """
        result, _ = self._reconcile(event)
        return result

    # --- Private ---

    def _reconcile(
        self, event: ChangeEvent,
    ) -> tuple[ReconcileResult, OperatorError | None]:
        cluster = event.object.name
        start = time.monotonic()
        created: list[str] = []
        deleted: list[str] = []
        error: OperatorError | None = None

        if event.type is EventType.ADDED:
            try:
                created = self._provisioner.create_cluster(event.object)
            except OperatorError as exc:
                error = exc
        elif event.type is EventType.DELETED:
            try:
                deleted = self._decommissioner.delete_cluster(event.object)
            except OperatorError as exc:
                error = exc
        else:
            logger.debug("Ignoring %s event for cluster %s", event.type, cluster)
            result = ReconcileResult(
                event_type=event.type,
                cluster=cluster,
                status=ReconcileStatus.IGNORED,
            )
            self._history.append(result)
            return result, None

        elapsed = (time.monotonic() - start) * 1000
        result = ReconcileResult(
            event_type=event.type,
            cluster=cluster,
            status=ReconcileStatus.FAILED if error else ReconcileStatus.APPLIED,
            created=created,
            deleted=deleted,
            error=str(error) if error else None,
            aborted=error is not None and self._on_error is ErrorPolicy.ABORT,
            duration_ms=elapsed,
        )
        self._history.append(result)

        if error is not None:
            if self._on_error is ErrorPolicy.CONTINUE:
                logger.error(
                    "%s %s failed, continuing: %s", event.type, cluster, error,
                )
            else:
                logger.error("%s %s failed: %s", event.type, cluster, error)
        else:
            logger.info(
                "%s %s reconciled in %.1f ms", event.type, cluster, elapsed,
            )
        return result, error
