"""Unbuffered hand-off between the watch producer and the controller.

A send does not return until a receiver has taken the item, so there is
never more than one item in flight and the producer is throttled to the
speed of reconciliation.
"""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised by receive() once the channel has been closed."""


class Channel(Generic[T]):
    """Rendezvous channel for one producer and one consumer.

    ``close()`` may be called from any thread and wakes both sides:
    a blocked ``send()`` returns False, a blocked ``receive()`` raises
    ChannelClosed. An item not yet received when the channel closes is
    discarded.
    """

    def __init__(self) -> None:
        # Reentrant: close() may run in a signal handler on the receiving thread.
        self._cond = threading.Condition(threading.RLock())
        self._item: T | None = None
        self._has_item = False
        self._sent = 0
        self._received = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, item: T) -> bool:
        """Hand *item* to the receiver. Returns False if the channel closed first."""
        with self._cond:
            while self._has_item and not self._closed:
                self._cond.wait()
            if self._closed:
                return False

            self._item = item
            self._has_item = True
            self._sent += 1
            ticket = self._sent
            self._cond.notify_all()

            while self._received < ticket and not self._closed:
                self._cond.wait()
            return self._received >= ticket

    def receive(self) -> T:
        """Block until an item arrives and return it."""
        with self._cond:
            while not self._has_item and not self._closed:
                self._cond.wait()
            if self._closed:
                raise ChannelClosed("channel closed")

            item = self._item
            self._item = None
            self._has_item = False
            self._received += 1
            self._cond.notify_all()
            return item  # type: ignore[return-value]

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._item = None
            self._has_item = False
            self._cond.notify_all()
