"""Flow control for commands written to a receiver.

The receiver answers (almost) every command with a message, but the
protocol offers no way to tell which message answers which command. A
command is therefore presumed complete as soon as the next message of any
kind arrives, and only then is the following command written.
"""
import logging
import time
from collections import deque, namedtuple

from pyiscp.utils import hexdump

__all__ = ("WriteQueue", "PendingCommand")

PendingCommand = namedtuple("PendingCommand", ("data", "callback"))


class WriteQueue(object):
    """FIFO of pending commands with at most one command in flight."""

    def __init__(self, send):
        """
            :param send:
                called with the bytes of a command when it is transmitted
            :type send:
                callable
        """
        self.log = logging.getLogger(__name__)
        self._send = send
        self._queue = deque()
        self._in_flight = None
        self._sent_at = None

    def __len__(self):
        return len(self._queue)

    @property
    def in_flight(self):
        """True while a transmitted command awaits completion."""
        return self._in_flight is not None

    def enqueue(self, data, callback=None):
        """Queue ``data``, transmitting it right away if nothing is in flight."""
        self.log.debug("queuing: %s", hexdump(data))
        self._queue.append(PendingCommand(data, callback))
        if self._in_flight is None:
            self._transmit_next()

    def frame_consumed(self):
        """Complete the command in flight and transmit the next one.

        Called for every message decoded from the receiver, whether or not
        it relates to the command in flight.
        """
        pending = self._in_flight
        if pending is not None:
            self.log.debug(
                "completed after %.3fs: %s",
                time.monotonic() - self._sent_at,
                hexdump(pending.data),
            )
            # Still in flight while the callback runs, so enqueue() queues.
            try:
                if pending.callback:
                    pending.callback()
            finally:
                self._in_flight = None
        self._transmit_next()

    def clear(self):
        """Forget every pending command without running callbacks."""
        self._queue.clear()
        self._in_flight = None
        self._sent_at = None

    def _transmit_next(self):
        if not self._queue:
            return
        pending = self._queue.popleft()
        self.log.debug("sending: %s", hexdump(pending.data))
        # In flight before sending, enqueue() from inside send must queue.
        self._in_flight = pending
        self._sent_at = time.monotonic()
        self._send(pending.data)
