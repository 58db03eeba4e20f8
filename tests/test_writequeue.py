"""Tests for command pacing."""
import pytest

from pyiscp.writequeue import WriteQueue


def make_queue():
    sent = []
    return WriteQueue(sent.append), sent


def test_first_write_is_sent_immediately():
    queue, sent = make_queue()
    queue.enqueue(b"W1")
    assert sent == [b"W1"]
    assert queue.in_flight
    assert len(queue) == 0


def test_later_writes_wait_for_a_frame():
    queue, sent = make_queue()
    queue.enqueue(b"W1")
    queue.enqueue(b"W2")
    queue.enqueue(b"W3")
    assert sent == [b"W1"]
    assert len(queue) == 2

    queue.frame_consumed()
    assert sent == [b"W1", b"W2"]
    queue.frame_consumed()
    assert sent == [b"W1", b"W2", b"W3"]
    assert queue.in_flight

    queue.frame_consumed()
    assert not queue.in_flight
    assert sent == [b"W1", b"W2", b"W3"]


def test_callback_fires_on_next_frame_only():
    queue, sent = make_queue()
    done = []
    queue.enqueue(b"W1", lambda: done.append("W1"))
    queue.enqueue(b"W2", lambda: done.append("W2"))
    assert done == []

    queue.frame_consumed()
    assert done == ["W1"]
    queue.frame_consumed()
    assert done == ["W1", "W2"]

    queue.frame_consumed()
    assert done == ["W1", "W2"]


def test_callback_runs_before_next_transmit():
    events = []
    queue = WriteQueue(lambda data: events.append(("sent", data)))
    queue.enqueue(b"W1", lambda: events.append(("done", b"W1")))
    queue.enqueue(b"W2")
    queue.frame_consumed()
    assert events == [("sent", b"W1"), ("done", b"W1"), ("sent", b"W2")]


def test_frame_with_nothing_in_flight():
    queue, sent = make_queue()
    queue.frame_consumed()
    assert sent == []
    assert not queue.in_flight

    queue.enqueue(b"W1")
    assert sent == [b"W1"]


def test_enqueue_after_queue_drained_sends_immediately():
    queue, sent = make_queue()
    queue.enqueue(b"W1")
    queue.frame_consumed()
    queue.enqueue(b"W2")
    assert sent == [b"W1", b"W2"]


def test_enqueue_from_callback_keeps_order():
    queue, sent = make_queue()
    queue.enqueue(b"W1", lambda: queue.enqueue(b"W3"))
    queue.enqueue(b"W2")
    queue.frame_consumed()
    assert sent == [b"W1", b"W2"]
    queue.frame_consumed()
    assert sent == [b"W1", b"W2", b"W3"]


def test_clear_drops_everything():
    queue, sent = make_queue()
    done = []
    queue.enqueue(b"W1", lambda: done.append("W1"))
    queue.enqueue(b"W2", lambda: done.append("W2"))
    queue.clear()
    assert not queue.in_flight
    assert len(queue) == 0

    queue.frame_consumed()
    assert done == []
    assert sent == [b"W1"]


def test_callback_enqueue_keeps_one_in_flight():
    queue, sent = make_queue()
    done = []

    def first_done():
        done.append("W1")
        queue.enqueue(b"W3", lambda: done.append("W3"))

    queue.enqueue(b"W1", first_done)
    queue.enqueue(b"W2", lambda: done.append("W2"))

    queue.frame_consumed()
    assert sent == [b"W1", b"W2"]
    assert len(queue) == 1
    queue.frame_consumed()
    queue.frame_consumed()
    assert sent == [b"W1", b"W2", b"W3"]
    assert done == ["W1", "W2", "W3"]
    assert not queue.in_flight


def test_failing_callback_releases_in_flight():
    queue, sent = make_queue()

    def fail():
        raise RuntimeError("callback failed")

    queue.enqueue(b"W1", fail)
    queue.enqueue(b"W2")
    with pytest.raises(RuntimeError):
        queue.frame_consumed()
    assert not queue.in_flight

    queue.frame_consumed()
    assert sent == [b"W1", b"W2"]
