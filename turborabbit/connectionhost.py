"""A managed AMQP connection that reconnects on demand and honours flow control."""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable
from typing import Any

import pika

from turborabbit.configs import TLSConfig
from turborabbit.tls import create_tls_config

_QUEUE_SIZE = 10
_FLOW_CONTROL_PAUSE = 1.0


def _offer(target: queue.Queue, item: Any) -> None:
    try:
        target.put_nowait(item)
    except queue.Full:
        pass


class ConnectionHost:
    """Holds one broker connection together with its error and blocking notices.

    ``errors`` receives close reasons; ``blockers`` receives True when the
    broker blocks the connection and False when it unblocks it.
    ``connection_factory`` turns pika connection parameters into a connection.
    """

    def __init__(
        self,
        uri: str,
        connection_name: str,
        connection_id: int,
        heartbeat_interval: float,
        connection_timeout: float,
        tls_config: TLSConfig | None = None,
        connection_factory: Callable[[pika.connection.Parameters], Any] | None = None,
    ) -> None:
        self.uri = uri
        self.connection_name = connection_name
        self.connection_id = connection_id
        self.heartbeat_interval = heartbeat_interval
        self.connection_timeout = connection_timeout
        self.tls_config = tls_config
        self.cached_channel_count = 0
        self.connection: Any = None
        self.errors: queue.Queue = queue.Queue(_QUEUE_SIZE)
        self.blockers: queue.Queue = queue.Queue(_QUEUE_SIZE)
        self._factory = connection_factory or pika.BlockingConnection
        self._lock = threading.Lock()

        if not self.connect():
            raise ConnectionError("unable to connect")

    def is_closed(self) -> bool:
        """Whether there is no open connection."""
        return self.connection is None or bool(self.connection.is_closed)

    def connect(self) -> bool:
        """Connect, or reconnect, once; True when a connection is open."""
        return self.connect_with_error_handler(None)

    def connect_with_error_handler(
        self, error_handler: Callable[[BaseException], Any] | None
    ) -> bool:
        """Connect, or reconnect, once, passing any failure to ``error_handler``."""
        if not self.is_closed():
            return True

        with self._lock:
            if not self.is_closed():
                return True

            try:
                context = None
                if self.tls_config is not None and self.tls_config.enable_tls:
                    context = create_tls_config(
                        self.tls_config.pem_cert_location,
                        self.tls_config.local_cert_location,
                    )
                connection = self._factory(self._parameters(context))
            except Exception as exc:
                if error_handler is not None:
                    error_handler(exc)
                return False

            self.connection = connection
            self.errors = queue.Queue(_QUEUE_SIZE)
            self.blockers = queue.Queue(_QUEUE_SIZE)
            self._watch(connection)
            return True

    def _parameters(self, tls_context: Any) -> pika.connection.Parameters:
        if tls_context is None:
            params = pika.URLParameters(self.uri)
        else:
            params = pika.URLParameters("amqps://" + self.tls_config.cert_server_name)
            params.ssl_options = pika.SSLOptions(tls_context, params.host)
        params.heartbeat = int(self.heartbeat_interval)
        params.socket_timeout = self.connection_timeout or None
        params.client_properties = {"connection_name": self.connection_name}
        return params

    def _watch(self, connection: Any) -> None:
        errors, blockers = self.errors, self.blockers
        on_close = getattr(connection, "add_on_close_callback", None)
        if callable(on_close):
            on_close(lambda _conn, reason: _offer(errors, reason))
        on_blocked = getattr(connection, "add_on_connection_blocked_callback", None)
        if callable(on_blocked):
            on_blocked(lambda _conn, _frame: _offer(blockers, True))
        on_unblocked = getattr(connection, "add_on_connection_unblocked_callback", None)
        if callable(on_unblocked):
            on_unblocked(lambda _conn, _frame: _offer(blockers, False))

    def pause_on_flow_control(self) -> None:
        """Sleep a second at a time while pending notices say the broker blocks us."""
        with self._lock:
            while not self.is_closed():
                try:
                    active = self.blockers.get_nowait()
                except queue.Empty:
                    return
                if not active:
                    return
                time.sleep(_FLOW_CONTROL_PAUSE)