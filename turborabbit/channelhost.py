"""A managed AMQP channel bound to a connection host."""

from __future__ import annotations

import queue
import threading
from typing import Any

from turborabbit.connectionhost import ConnectionHost

_QUEUE_SIZE = 100


def _offer(target: queue.Queue, item: Any) -> None:
    try:
        target.put_nowait(item)
    except queue.Full:
        pass


class ChannelHost:
    """Holds one channel, its pending publish confirmations and close errors."""

    def __init__(
        self,
        connection_host: ConnectionHost,
        channel_id: int,
        connection_id: int,
        ackable: bool,
        cached: bool,
    ) -> None:
        if connection_host.is_closed():
            raise ConnectionError("can't open a channel - connection is already closed")

        self.connection_host = connection_host
        self.id = channel_id
        self.connection_id = connection_id
        self.ackable = ackable
        self.cached_channel = cached
        self.channel: Any = None
        self.confirmations: queue.Queue = queue.Queue(_QUEUE_SIZE)
        self.errors: queue.Queue = queue.Queue(_QUEUE_SIZE)
        self._lock = threading.Lock()

        self.make_channel()

    def close(self) -> None:
        """Close the underlying channel."""
        self.channel.close()

    def make_channel(self) -> None:
        """Open a fresh channel on the connection, resetting the notice queues."""
        with self._lock:
            self.channel = self.connection_host.connection.channel()

            if self.ackable:
                self.channel.confirm_delivery()
                self.confirmations = queue.Queue(_QUEUE_SIZE)

            errors: queue.Queue = queue.Queue(_QUEUE_SIZE)
            self.errors = errors
            on_close = getattr(self.channel, "add_on_close_callback", None)
            if callable(on_close):
                on_close(lambda _channel, reason: _offer(errors, reason))

    def flush_confirms(self) -> None:
        """Drop a stale pending confirmation, if any."""
        with self._lock:
            if self.connection_host.is_closed():
                return
            try:
                self.confirmations.get_nowait()
            except queue.Empty:
                pass

    def pause_for_flow_control(self) -> None:
        """Wait while the connection is blocked by the broker."""
        self.connection_host.pause_on_flow_control()