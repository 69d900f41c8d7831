"""Error taxonomy for the etcd operator.

Every error carries a class-level ``fatal`` flag:

- fatal errors mean the watch stream is broken and the controller must stop
- non-fatal errors affect a single reconcile and are handed to the
  configured error policy (abort or continue)
"""

from __future__ import annotations


class OperatorError(Exception):
    """Base class for all operator errors."""

    fatal: bool = False


class WatchConnectionError(OperatorError):
    """The watch endpoint is unreachable, rejected the request, or closed."""

    fatal = True


class DecodeError(OperatorError):
    """A watch frame could not be parsed into a ChangeEvent."""

    fatal = True

    def __init__(self, message: str, frame: bytes | None = None) -> None:
        super().__init__(message)
        self.frame = frame


class PlatformAPIError(OperatorError):
    """A create, list or delete call against the platform failed."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class InvalidSpecError(OperatorError):
    """The declared cluster cannot be planned (bad size or name)."""
