import pytest

from opskit.switchboard import EventWaker, QueueFull, Queues, TrackedItem, Waker


def pair(capacity=1024):
    waker = EventWaker()
    a, b = Queues.new([waker], [waker], capacity)
    return a[0], b[0]


def as_tuple(item):
    return None if item is None else (item.sender, item.item)


def test_basic():
    a, b = pair()
    assert a.try_recv() is None
    assert b.try_recv() is None

    a.try_send_to(0, 1)
    assert a.try_recv() is None
    assert as_tuple(b.try_recv()) == (0, 1)
    assert a.try_recv() is None
    assert b.try_recv() is None

    a.try_send_any(2)
    assert a.try_recv() is None
    assert as_tuple(b.try_recv()) == (0, 2)
    assert b.try_recv() is None

    a.try_send_all(3)
    assert a.try_recv() is None
    assert as_tuple(b.try_recv()) == (0, 3)
    assert b.try_recv() is None

    b.try_send_to(0, "apple")
    assert b.try_recv() is None
    assert as_tuple(a.try_recv()) == (0, "apple")
    assert a.try_recv() is None

    b.try_send_any("banana")
    assert b.try_recv() is None
    assert as_tuple(a.try_recv()) == (0, "banana")
    assert a.try_recv() is None

    b.try_send_all("orange")
    assert b.try_recv() is None
    assert as_tuple(a.try_recv()) == (0, "orange")


def test_sender_id_is_tracked():
    wakers = [EventWaker(), EventWaker()]
    a, b = Queues.new(wakers, [EventWaker()], 8)
    a[1].try_send_to(0, "x")
    assert b[0].try_recv() == TrackedItem(1, "x")


def test_broadcast_reaches_every_receiver():
    a, b = Queues.new([EventWaker()], [EventWaker(), EventWaker(), EventWaker()], 8)
    a[0].try_send_all("hi")
    assert [as_tuple(q.try_recv()) for q in b] == [(0, "hi")] * 3


def test_full_queue_returns_item():
    a, b = pair(capacity=1)
    a.try_send_to(0, "first")
    with pytest.raises(QueueFull) as info:
        a.try_send_to(0, "second")
    assert info.value.item == "second"
    with pytest.raises(QueueFull):
        a.try_send_all("third")
    assert as_tuple(b.try_recv()) == (0, "first")


def test_recv_all():
    a, b = pair()
    for i in range(5):
        a.try_send_to(0, i)
    items = b.try_recv_all()
    assert [item.item for item in items] == [0, 1, 2, 3, 4]
    assert b.try_recv_all() == []


def test_bad_receiver_id():
    a, _ = pair()
    with pytest.raises(IndexError):
        a.try_send_to(1, "x")


def test_wake_only_after_send():
    a_waker, b_waker = EventWaker(), EventWaker()
    a, b = Queues.new([a_waker], [b_waker], 8)
    a[0].wake()
    assert b_waker.wait(0) is False
    a[0].try_send_to(0, "x")
    a[0].wake()
    assert b_waker.wait(0) is True
    a[0].wake()
    assert b_waker.wait(0) is False


class FailingWaker(Waker):
    def __init__(self):
        self.calls = 0
        self.fail = True

    def wake(self):
        self.calls += 1
        if self.fail:
            raise OSError("cannot wake")


def test_failed_wake_is_retried():
    waker = FailingWaker()
    a, _ = Queues.new([EventWaker()], [waker], 8)
    a[0].try_send_to(0, "x")
    with pytest.raises(OSError):
        a[0].wake()
    waker.fail = False
    a[0].wake()
    assert waker.calls == 2
    a[0].wake()
    assert waker.calls == 2


def test_invalid_construction():
    with pytest.raises(ValueError):
        Queues.new([EventWaker()], [EventWaker()], 0)
    with pytest.raises(ValueError):
        Queues.new([EventWaker()], [], 4)