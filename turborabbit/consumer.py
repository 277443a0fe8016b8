"""Consumers that pull messages from a queue on cached or transient channels."""

from __future__ import annotations

import collections
import queue
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from turborabbit.configs import ConsumerConfig, RabbitSeasoning
from turborabbit.message import Delivery, ReceivedMessage

_BUFFER_SIZE = 1000


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _to_delivery(channel: Any, method: Any, properties: Any, body: bytes) -> Delivery:
    stamp = getattr(properties, "timestamp", None)
    if isinstance(stamp, (int, float)):
        moment: datetime | None = datetime.fromtimestamp(stamp, timezone.utc)
    elif isinstance(stamp, datetime):
        moment = stamp
    else:
        moment = None
    return Delivery(
        body=bytes(body or b""),
        delivery_tag=getattr(method, "delivery_tag", 0) or 0,
        acknowledger=channel,
        exchange=_text(getattr(method, "exchange", "")),
        routing_key=_text(getattr(method, "routing_key", "")),
        redelivered=bool(getattr(method, "redelivered", False)),
        consumer_tag=_text(getattr(method, "consumer_tag", "")),
        content_type=_text(getattr(properties, "content_type", "")),
        content_encoding=_text(getattr(properties, "content_encoding", "")),
        headers=getattr(properties, "headers", None),
        delivery_mode=getattr(properties, "delivery_mode", 0) or 0,
        priority=getattr(properties, "priority", 0) or 0,
        correlation_id=_text(getattr(properties, "correlation_id", "")),
        reply_to=_text(getattr(properties, "reply_to", "")),
        expiration=_text(getattr(properties, "expiration", "")),
        message_id=_text(getattr(properties, "message_id", "")),
        timestamp=moment,
        type=_text(getattr(properties, "type", "")),
        user_id=_text(getattr(properties, "user_id", "")),
        app_id=_text(getattr(properties, "app_id", "")),
    )


def _drain(target: queue.Queue) -> None:
    while True:
        try:
            target.get_nowait()
        except queue.Empty:
            return


class Consumer:
    """Receives messages from one queue, in the background or one at a time.

    Background consumption puts each ReceivedMessage on ``received_messages()``
    or hands it to an action; channel failures appear on ``errors()``.
    Intervals are in milliseconds.
    """

    def __init__(
        self,
        config: ConsumerConfig,
        connection_pool: Any,
        *,
        enabled: bool,
        queue_name: str,
        consumer_name: str,
        auto_ack: bool,
        exclusive: bool,
        no_wait: bool,
        args: dict[str, Any] | None,
        qos_count_override: int,
        sleep_on_error_interval: int,
        sleep_on_idle_interval: int,
    ) -> None:
        self.config = config
        self.connection_pool = connection_pool
        self.enabled = enabled
        self.queue_name = queue_name
        self.consumer_name = consumer_name
        self.auto_ack = auto_ack
        self.exclusive = exclusive
        self.no_wait = no_wait
        self.args = args
        self.qos_count_override = qos_count_override
        self._sleep_on_error = sleep_on_error_interval / 1000
        self._sleep_on_idle = sleep_on_idle_interval / 1000
        self._errors: queue.Queue[BaseException] = queue.Queue(_BUFFER_SIZE)
        self._received: queue.Queue[ReceivedMessage] = queue.Queue(_BUFFER_SIZE)
        self._consume_stop: queue.Queue[bool] = queue.Queue(1)
        self._stop_immediate = False
        self._started = False
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ConsumerConfig, connection_pool: Any) -> Consumer:
        """Create a consumer from its configuration."""
        return cls(
            config,
            connection_pool,
            enabled=config.enabled,
            queue_name=config.queue_name,
            consumer_name=config.consumer_name,
            auto_ack=config.auto_ack,
            exclusive=config.exclusive,
            no_wait=config.no_wait,
            args=config.args,
            qos_count_override=config.qos_count_override,
            sleep_on_error_interval=config.sleep_on_error_interval,
            sleep_on_idle_interval=config.sleep_on_idle_interval,
        )

    @classmethod
    def from_seasoning(
        cls,
        rconfig: RabbitSeasoning,
        connection_pool: Any,
        queue_name: str,
        consumer_name: str,
        auto_ack: bool,
        exclusive: bool,
        no_wait: bool,
        args: dict[str, Any] | None,
        qos_count_override: int,
        sleep_on_error_interval: int,
        sleep_on_idle_interval: int,
    ) -> Consumer:
        """Create an enabled consumer whose name must appear in the service config."""
        config = rconfig.consumer_configs.get(consumer_name)
        if config is None:
            raise KeyError(f"consumer {consumer_name!r} was not found in config")
        return cls(
            config,
            connection_pool,
            enabled=True,
            queue_name=queue_name,
            consumer_name=consumer_name,
            auto_ack=auto_ack,
            exclusive=exclusive,
            no_wait=no_wait,
            args=args,
            qos_count_override=qos_count_override,
            sleep_on_error_interval=sleep_on_error_interval,
            sleep_on_idle_interval=sleep_on_idle_interval,
        )

    def get(self, queue_name: str) -> Delivery | None:
        """Fetch one auto-acknowledged message from any queue, or None if it is empty."""
        channel = self.connection_pool.get_transient_channel(False)
        try:
            method, properties, body = channel.basic_get(queue=queue_name, auto_ack=True)
            if method is None:
                return None
            return _to_delivery(channel, method, properties, body)
        finally:
            channel.close()

    def get_batch(self, queue_name: str, batch_size: int) -> list[Delivery]:
        """Fetch up to ``batch_size`` auto-acknowledged messages from any queue."""
        if batch_size < 1:
            raise ValueError("can't get a batch of messages whose size is less than 1")
        channel = self.connection_pool.get_transient_channel(False)
        try:
            messages: list[Delivery] = []
            while len(messages) < batch_size:
                method, properties, body = channel.basic_get(
                    queue=queue_name, auto_ack=True
                )
                if method is None:
                    break
                messages.append(_to_delivery(channel, method, properties, body))
            return messages
        finally:
            channel.close()

    def start_consuming(self) -> None:
        """Start consuming in the background onto ``received_messages()``."""
        self._start(None)

    def start_consuming_with_action(
        self, action: Callable[[ReceivedMessage], Any]
    ) -> None:
        """Start consuming in the background, calling ``action`` for every message."""
        self._start(action)

    def _start(self, action: Callable[[ReceivedMessage], Any] | None) -> None:
        with self._lock:
            if not self.enabled:
                return
            self.flush_errors()
            self.flush_stop()
            threading.Thread(
                target=self._consume_loop, args=(action,), daemon=True
            ).start()
            self._started = True

    def _stop_requested(self) -> bool:
        try:
            return self._consume_stop.get_nowait()
        except queue.Empty:
            return False

    def _sleep(self, interval: float) -> None:
        if interval > 0:
            time.sleep(interval)

    def _consume_loop(self, action: Callable[[ReceivedMessage], Any] | None) -> None:
        while not self._stop_requested():
            chan_host = self.connection_pool.get_channel_from_pool()
            pending: collections.deque = collections.deque()
            channel = chan_host.channel

            if self.qos_count_override > 0:
                try:
                    channel.basic_qos(prefetch_count=self.qos_count_override)
                except Exception:
                    pass

            try:
                tag = channel.basic_consume(
                    queue=self.queue_name,
                    on_message_callback=lambda ch, method, props, body: pending.append(
                        (ch, method, props, body)
                    ),
                    auto_ack=self.auto_ack,
                    exclusive=self.exclusive,
                    consumer_tag=self.consumer_name or None,
                )
            except Exception:
                self.connection_pool.return_channel(chan_host, True)
                self._sleep(self._sleep_on_error)
                continue

            if self._process_deliveries(chan_host, pending, tag, action):
                break

        with self._lock:
            self._started = False
            self._stop_immediate = False

    def _report_channel_error(self, reason: Any) -> None:
        code = getattr(reason, "reply_code", 0)
        text = getattr(reason, "reply_text", None) or str(reason)
        error = RuntimeError(
            f"consumer's current channel closed\r\n[reason: {text}]\r\n[code: {code}]"
        )
        try:
            self._errors.put_nowait(error)
        except queue.Full:
            pass

    def _process_deliveries(
        self,
        chan_host: Any,
        pending: collections.deque,
        consumer_tag: Any,
        action: Callable[[ReceivedMessage], Any] | None,
    ) -> bool:
        """Handle deliveries until the channel fails (False) or a stop arrives (True)."""
        while True:
            try:
                reason = chan_host.errors.get_nowait()
            except queue.Empty:
                reason = None
            if reason is None and not pending:
                try:
                    chan_host.connection_host.connection.process_data_events(time_limit=0)
                except Exception as exc:
                    reason = exc
            if reason is not None:
                self.connection_pool.return_channel(chan_host, True)
                self._report_channel_error(reason)
                self._sleep(self._sleep_on_error)
                return False

            if pending:
                channel, method, properties, body = pending.popleft()
                message = ReceivedMessage.from_delivery(
                    not self.auto_ack, _to_delivery(channel, method, properties, body)
                )
                if action is not None:
                    action(message)
                else:
                    self._received.put(message)
            else:
                self._sleep(self._sleep_on_idle)

            if self._stop_requested():
                try:
                    chan_host.channel.basic_cancel(consumer_tag)
                except Exception:
                    pass
                self.connection_pool.return_channel(chan_host, False)
                return True

    def stop_consuming(self, immediate: bool, flush_messages: bool) -> None:
        """Signal the background consumer to stop, optionally dropping buffered messages.

        Dropped messages that were not auto-acknowledged stay on the broker;
        auto-acknowledged ones are lost.
        """
        with self._lock:
            if not self._started:
                raise RuntimeError("can't stop a stopped consumer")
            self._stop_immediate = immediate
            self._consume_stop.put(True)
            if flush_messages:
                self.flush_messages()

    def received_messages(self) -> queue.Queue:
        """The queue of messages received in the background."""
        return self._received

    def errors(self) -> queue.Queue:
        """The queue of errors met while consuming."""
        return self._errors

    def flush_stop(self) -> None:
        """Discard any pending stop signal."""
        _drain(self._consume_stop)

    def flush_errors(self) -> None:
        """Discard all pending errors."""
        _drain(self._errors)

    def flush_messages(self) -> None:
        """Discard all buffered messages; auto-acknowledged ones are lost."""
        _drain(self._received)

    def started(self) -> bool:
        """Whether background consumption is running."""
        with self._lock:
            return self._started