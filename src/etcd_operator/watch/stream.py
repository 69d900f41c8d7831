"""WatchStream: EtcdCluster change events from the API server's watch endpoint.

One long-lived ``GET ...?watch=true`` request is opened and read by a
background producer thread. Each JSON frame in the body is decoded
into a ChangeEvent and handed to the consumer over an unbuffered Channel,
so events reach the consumer in arrival order and the producer never
runs more than one event ahead.

Uses stdlib ``urllib.request``; no extra dependencies required.
"""

from __future__ import annotations

import contextlib
import enum
import json
import logging
import socket
import threading
import urllib.error
import urllib.request
from collections.abc import Iterator
from typing import Any

from pydantic import ValidationError

from etcd_operator.errors import DecodeError, OperatorError, WatchConnectionError
from etcd_operator.models import ChangeEvent, EventType
from etcd_operator.watch.channel import Channel, ChannelClosed

logger = logging.getLogger(__name__)

WatchItem = ChangeEvent | OperatorError


class DecodeErrorPolicy(enum.StrEnum):
    ABORT = "abort"
    SKIP = "skip"


def watch_url(master: str, group: str = "coreos.com", namespace: str = "default") -> str:
    """URL of the EtcdCluster watch endpoint."""
    return (
        f"{master.rstrip('/')}/apis/{group}/v1/namespaces/{namespace}"
        "/etcdclusters?watch=true"
    )


_WHITESPACE = b" \t\r\n"
_OPEN = b"{["
_CLOSE = b"}]"
_QUOTE = ord('"')
_BACKSLASH = ord("\\")


class FrameDecoder:
    """Split a byte stream into consecutive JSON values.

    Values may be separated by any whitespace or by nothing at all, may
    span several lines, and may arrive split across reads. Objects and
    arrays end at their matching closing bracket (brackets inside strings
    are ignored); any other top-level text runs to the next whitespace or
    opening bracket and is returned as-is so that decoding reports it.
    The incomplete tail is kept until the rest arrives or ``flush()`` is
    called at end of stream.
    """

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._buffer = bytearray()
        self._pos = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False
        self._in_scalar = False

    def feed(self, data: bytes) -> list[bytes]:
        buf = self._buffer
        buf += data
        frames: list[bytes] = []
        start = 0
        i = self._pos

        while i < len(buf):
            c = buf[i]
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif c == _BACKSLASH:
                    self._escaped = True
                elif c == _QUOTE:
                    self._in_string = False
            elif self._depth:
                if c == _QUOTE:
                    self._in_string = True
                elif c in _OPEN:
                    self._depth += 1
                elif c in _CLOSE:
                    self._depth -= 1
                    if not self._depth:
                        frames.append(bytes(buf[start:i + 1]))
                        start = i + 1
            elif c in _WHITESPACE:
                if self._in_scalar:
                    frames.append(bytes(buf[start:i]))
                    self._in_scalar = False
                start = i + 1
            elif c in _OPEN:
                if self._in_scalar:
                    frames.append(bytes(buf[start:i]))
                    self._in_scalar = False
                start = i
                self._depth = 1
            else:
                self._in_scalar = True
                if c == _QUOTE:
                    self._in_string = True
            i += 1

        del buf[:start]
        self._pos = len(buf)
        return frames

    def flush(self) -> list[bytes]:
        rest = bytes(self._buffer).strip()
        self._reset()
        return [rest] if rest else []


def decode_event(frame: bytes) -> ChangeEvent:
    """Decode one frame.

    Raises:
        DecodeError: The frame is not JSON or not a valid ChangeEvent.
        WatchConnectionError: The frame is an in-band ERROR event.
    """
    try:
        data = json.loads(frame)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeError(f"Malformed watch frame: {exc}", frame=frame) from exc

    if not isinstance(data, dict):
        raise DecodeError(
            f"Watch frame is a JSON {type(data).__name__}, expected an object",
            frame=frame,
        )

    if data.get("Type", data.get("type")) == EventType.ERROR:
        status: Any = data.get("Object", data.get("object")) or {}
        message = status.get("message", "unknown error") if isinstance(status, dict) else status
        raise WatchConnectionError(f"Watch endpoint reported an error: {message}")

    try:
        return ChangeEvent.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"Invalid watch event: {exc}", frame=frame) from exc


class WatchStream:
    """Producer side of the watch.

    Usage::

        stream = WatchStream(watch_url("http://127.0.0.1:8080"))
        stream.open()      # raises WatchConnectionError
        stream.start()
        for item in stream:
            ...            # ChangeEvent, or a fatal OperatorError
        stream.close()

    ``close()`` is the stop signal: it closes the channel and shuts down
    the connection, unblocking both the consumer and the network read.
    """

    def __init__(
        self,
        url: str,
        decode_errors: DecodeErrorPolicy = DecodeErrorPolicy.ABORT,
        timeout: float | None = None,
        read_size: int = 65536,
    ) -> None:
        self._url = url
        self._decode_errors = DecodeErrorPolicy(decode_errors)
        self._timeout = timeout
        self._read_size = read_size
        self._channel: Channel[WatchItem] = Channel()
        self._stopping = threading.Event()
        self._response: Any = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def open(self) -> None:
        """Connect to the watch endpoint and check the response status."""
        req = urllib.request.Request(
            self._url,
            headers={"Accept": "application/json"},
            method="GET",
        )
        try:
            resp = urllib.request.urlopen(req, timeout=self._timeout)  # noqa: S310
        except urllib.error.HTTPError as exc:
            raise WatchConnectionError(
                f"Invalid status code: {exc.code} {exc.reason}"
            ) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise WatchConnectionError(
                f"Cannot connect to watch endpoint {self._url}: {exc}"
            ) from exc

        status = getattr(resp, "status", 200)
        if status != 200:
            resp.close()
            raise WatchConnectionError(f"Invalid status code: {status}")

        self._response = resp
        logger.info("start watching %s", self._url)

    def start(self) -> None:
        """Open (if needed) and start the background producer thread."""
        if self._thread is not None:
            return
        if self._response is None:
            self.open()
        self._thread = threading.Thread(
            target=self._produce, name="watch-stream", daemon=True,
        )
        self._thread.start()

    def __iter__(self) -> Iterator[WatchItem]:
        while True:
            try:
                yield self._channel.receive()
            except ChannelClosed:
                return

    def close(self) -> None:
        self._stopping.set()
        self._channel.close()
        if self._response is not None:
            _shutdown_socket(self._response)
            with contextlib.suppress(Exception):
                self._response.close()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # --- Private: producer ---

    def _produce(self) -> None:
        decoder = FrameDecoder()
        try:
            while not self._stopping.is_set():
                try:
                    chunk = self._response.read1(self._read_size)
                except Exception as exc:
                    if not self._stopping.is_set():
                        error = WatchConnectionError(f"Watch stream read failed: {exc}")
                        error.__cause__ = exc
                        self._publish(error)
                    return

                if not chunk:
                    if self._stopping.is_set():
                        return
                    for frame in decoder.flush():
                        if not self._handle_frame(frame):
                            return
                    self._publish(WatchConnectionError("Watch stream closed"))
                    return

                for frame in decoder.feed(chunk):
                    if not self._handle_frame(frame):
                        return
        finally:
            self._channel.close()
            logger.debug("watch producer exited")

    def _handle_frame(self, frame: bytes) -> bool:
        """Decode and publish one frame. Returns False when production must stop."""
        try:
            event = decode_event(frame)
        except DecodeError as exc:
            if self._decode_errors is DecodeErrorPolicy.SKIP:
                logger.warning("Skipping malformed watch frame: %s", exc)
                return True
            self._publish(exc)
            return False
        except WatchConnectionError as exc:
            self._publish(exc)
            return False

        logger.info(
            "etcd cluster event: %s %s size=%d",
            event.type, event.object.name, event.object.size,
        )
        return self._publish(event)

    def _publish(self, item: WatchItem) -> bool:
        return self._channel.send(item)


def _shutdown_socket(response: Any) -> None:
    """Shut down the connection under *response* so a blocked read returns.

    Closing the response alone waits for the reader lock held by a read
    in progress. The socket object built here only borrows the descriptor
    and is detached without closing it.
    """
    try:
        fd = response.fileno()
    except (AttributeError, OSError, ValueError):
        return
    if not isinstance(fd, int) or fd < 0:
        return
    try:
        sock = socket.socket(fileno=fd)
    except OSError:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        logger.debug("watch socket already shut down")
    finally:
        sock.detach()
