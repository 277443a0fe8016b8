"""A round-robin pool of connections with a cache of confirm-enabled channels."""

from __future__ import annotations

import copy
import queue
import threading
import time
from collections.abc import Callable
from contextlib import suppress
from typing import Any

import pika

from turborabbit.channelhost import ChannelHost
from turborabbit.configs import PoolConfig
from turborabbit.connectionhost import ConnectionHost


class ConnectionPool:
    """Hands out connections round robin and caches ackable channels.

    Unhealthy or flagged connections are reconnected when next taken;
    retries wait ``sleep_on_error_interval`` milliseconds.
    """

    def __init__(
        self,
        config: PoolConfig,
        error_handler: Callable[[BaseException], Any] | None = None,
        unhealthy_handler: Callable[[BaseException], Any] | None = None,
        connection_factory: Callable[[pika.connection.Parameters], Any] | None = None,
    ) -> None:
        if config.heartbeat == 0 or config.connection_timeout == 0:
            raise ValueError("connectionpool heartbeat or connectiontimeout can't be 0")
        if config.max_connection_count == 0:
            raise ValueError("connectionpool maxconnectioncount can't be 0")

        self.config = copy.copy(config)
        self._uri = config.uri
        self._heartbeat_interval = float(config.heartbeat)
        self._connection_timeout = float(config.connection_timeout)
        self._sleep_on_error_interval = config.sleep_on_error_interval / 1000
        self._error_handler = error_handler
        self._unhealthy_handler = unhealthy_handler
        self._connection_factory = connection_factory
        self._connections: queue.Queue[ConnectionHost] = queue.Queue()
        self._channels: queue.Queue[ChannelHost] = queue.Queue(
            config.max_cache_channel_count
        )
        self._flagged: dict[int, bool] = {}
        self._flag_lock = threading.Lock()
        self._connection_id = 0

        if not self._initialize_connections():
            raise ConnectionError("initialization failed during connection creation")

    def _initialize_connections(self) -> bool:
        self._connection_id = 0
        self._connections = queue.Queue()

        for _ in range(self.config.max_connection_count):
            try:
                host = ConnectionHost(
                    self._uri,
                    f"{self.config.application_name}-{self._connection_id}",
                    self._connection_id,
                    self._heartbeat_interval,
                    self._connection_timeout,
                    self.config.tls_config,
                    connection_factory=self._connection_factory,
                )
            except Exception as exc:
                self._handle_error(exc)
                return False
            self._connections.put(host)
            self._connection_id += 1

        for channel_id in range(self.config.max_cache_channel_count):
            self._channels.put(self._create_cache_channel(channel_id))

        return True

    def get_connection(self) -> ConnectionHost:
        """Take the next connection, recovering it first if needed.

        Blocks while the pool is empty, the broker is unreachable, or flow
        control is in force.
        """
        host = self._connections.get()
        self._verify_healthy_connection(host)
        return host

    def _verify_healthy_connection(self, host: ConnectionHost) -> None:
        healthy = True
        try:
            error = host.errors.get_nowait()
        except queue.Empty:
            pass
        else:
            healthy = False
            if self._unhealthy_handler is not None:
                self._unhealthy_handler(error)

        if self._is_flagged(host.connection_id) or not healthy or host.is_closed():
            self._trigger_connection_recovery(host)

        host.pause_on_flow_control()

    def _trigger_connection_recovery(self, host: ConnectionHost) -> None:
        while not host.connect_with_error_handler(self._unhealthy_handler):
            if self._sleep_on_error_interval > 0:
                time.sleep(self._sleep_on_error_interval)

        while True:
            try:
                host.errors.get_nowait()
            except queue.Empty:
                break
        self._set_flag(host.connection_id, False)

    def return_connection(self, conn_host: ConnectionHost, flag: bool) -> None:
        """Put a connection back at the end of the queue, flagging it if it failed."""
        if flag:
            self._set_flag(conn_host.connection_id, True)
        self._connections.put(conn_host)

    def get_channel_from_pool(self) -> ChannelHost:
        """Take a cached ackable channel, blocking while none is free."""
        return self._channels.get()

    def return_channel(self, chan_host: ChannelHost, erred: bool) -> None:
        """Return a cached channel, rebuilding it if it failed; close any other."""
        if chan_host.cached_channel:
            if erred:
                self._reconnect_channel(chan_host)
            else:
                chan_host.flush_confirms()
            self._channels.put(chan_host)
            return

        with suppress(Exception):
            chan_host.close()

    def _reconnect_channel(self, chan_host: ChannelHost) -> None:
        while True:
            self._verify_healthy_connection(chan_host.connection_host)
            try:
                chan_host.make_channel()
            except Exception as exc:
                self._handle_error(exc)
                continue
            return

    def _create_cache_channel(self, channel_id: int) -> ChannelHost:
        while True:
            host = self.get_connection()
            try:
                chan_host = ChannelHost(host, channel_id, host.connection_id, True, True)
            except Exception as exc:
                self._handle_error(exc)
                self.return_connection(host, True)
                continue
            self.return_connection(host, False)
            return chan_host

    def get_transient_channel(self, ackable: bool) -> Any:
        """Open an unmanaged channel, with publisher confirms when ``ackable``."""
        while True:
            host = self.get_connection()
            try:
                channel = host.connection.channel()
            except Exception as exc:
                self._handle_error(exc)
                self.return_connection(host, True)
                continue

            self.return_connection(host, False)

            if ackable:
                try:
                    channel.confirm_delivery()
                except Exception as exc:
                    self._handle_error(exc)
                    continue
            return channel

    def _set_flag(self, connection_id: int, flagged: bool) -> None:
        with self._flag_lock:
            self._flagged[connection_id] = flagged

    def _is_flagged(self, connection_id: int) -> bool:
        with self._flag_lock:
            return self._flagged.get(connection_id, False)

    def shutdown(self) -> None:
        """Close every cached channel and connection and empty the pool."""
        while True:
            try:
                chan_host = self._channels.get_nowait()
            except queue.Empty:
                break
            with suppress(Exception):
                chan_host.close()

        while True:
            try:
                host = self._connections.get_nowait()
            except queue.Empty:
                break
            with suppress(Exception):
                if not host.is_closed():
                    host.connection.close()

        self._connections = queue.Queue()
        with self._flag_lock:
            self._flagged = {}
        self._connection_id = 0

    def _handle_error(self, error: BaseException) -> None:
        if self._error_handler is not None:
            self._error_handler(error)
        if self._sleep_on_error_interval > 0:
            time.sleep(self._sleep_on_error_interval)