"""Queues for routed communication between two groups of threads."""

from __future__ import annotations

import queue
import random
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


class Waker(ABC):
    """Wakes the event loop of a receiver."""

    @abstractmethod
    def wake(self) -> None:
        """Wake the receiver; raise OSError on failure."""


class EventWaker(Waker):
    """A waker backed by a threading event."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def wake(self) -> None:
        self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for a wake-up; return whether one came, and clear it."""
        woken = self._event.wait(timeout)
        if woken:
            self._event.clear()
        return woken


class QueueFull(Exception):
    """An item could not be sent; ``item`` holds it."""

    def __init__(self, item: Any) -> None:
        super().__init__("queue is full")
        self.item = item


@dataclass(frozen=True)
class TrackedItem(Generic[T]):
    """An item together with the id of the side that sent it."""

    sender: int
    item: T


class _WakingSender:
    def __init__(self, inner: "queue.Queue[TrackedItem]", waker: Waker) -> None:
        self.inner = inner
        self.waker = waker
        self.needs_wake = False

    def clone(self) -> "_WakingSender":
        return _WakingSender(self.inner, self.waker)

    def try_send(self, item: TrackedItem) -> bool:
        try:
            self.inner.put_nowait(item)
        except queue.Full:
            return False
        self.needs_wake = True
        return True

    def wake(self) -> None:
        if self.needs_wake:
            self.waker.wake()
            self.needs_wake = False


class Queues:
    """One endpoint: sends to every queue on the other side, receives on one.

    Items may go to one chosen receiver, to any receiver picked uniformly at
    random, or to all of them. Each sent item carries this endpoint's id.
    """

    def __init__(
        self, senders: List[_WakingSender], receiver: "queue.Queue[TrackedItem]", id: int
    ) -> None:
        self._senders = senders
        self._receiver = receiver
        self._id = id
        self._rng = random.Random()

    @property
    def id(self) -> int:
        return self._id

    @staticmethod
    def new(
        a_wakers: Sequence[Waker], b_wakers: Sequence[Waker], capacity: int
    ) -> Tuple[List["Queues"], List["Queues"]]:
        """Build the endpoints of both sides, in the order of the wakers.

        ``capacity`` bounds the pending items of each receiver.
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise TypeError("capacity must be an int")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        a_wakers = list(a_wakers)
        b_wakers = list(b_wakers)
        if bool(a_wakers) != bool(b_wakers):
            raise ValueError("both sides need at least one waker")

        a_tx, b_rx = [], []
        for waker in b_wakers:
            q: "queue.Queue[TrackedItem]" = queue.Queue(maxsize=capacity)
            a_tx.append(_WakingSender(q, waker))
            b_rx.append(q)

        b_tx, a_rx = [], []
        for waker in a_wakers:
            q = queue.Queue(maxsize=capacity)
            b_tx.append(_WakingSender(q, waker))
            a_rx.append(q)

        a = [Queues([s.clone() for s in a_tx], rx, i) for i, rx in enumerate(a_rx)]
        b = [Queues([s.clone() for s in b_tx], rx, i) for i, rx in enumerate(b_rx)]
        return a, b

    def try_recv(self) -> Optional[TrackedItem]:
        """One pending item, or None when there is none."""
        try:
            return self._receiver.get_nowait()
        except queue.Empty:
            return None

    def try_recv_all(self) -> List[TrackedItem]:
        """Every item pending at the time of the call."""
        items = []
        for _ in range(self._receiver.qsize()):
            try:
                items.append(self._receiver.get_nowait())
            except queue.Empty:
                break
        return items

    def _send(self, sender: _WakingSender, item: Any) -> None:
        if not sender.try_send(TrackedItem(self._id, item)):
            raise QueueFull(item)

    def try_send_to(self, id: int, item: Any) -> None:
        """Send ``item`` to the receiver with ``id``; QueueFull if it is full."""
        if not 0 <= id < len(self._senders):
            raise IndexError(f"no receiver with id {id}")
        self._send(self._senders[id], item)

    def try_send_any(self, item: Any) -> None:
        """Send ``item`` to a receiver picked at random."""
        self._send(self._rng.choice(self._senders), item)

    def try_send_all(self, item: Any) -> None:
        """Send ``item`` to every receiver; QueueFull if any of them is full."""
        failed = False
        for sender in self._senders:
            if not sender.try_send(TrackedItem(self._id, item)):
                failed = True
        if failed:
            raise QueueFull(item)

    def wake(self) -> None:
        """Wake every receiver sent to since the last successful wake.

        All receivers are tried; the last error met is raised afterwards.
        """
        error: Optional[BaseException] = None
        for sender in self._senders:
            try:
                sender.wake()
            except OSError as exc:
                error = exc
        if error is not None:
            raise error

    def __repr__(self) -> str:
        return f"Queues(id={self._id}, receivers={len(self._senders)})"