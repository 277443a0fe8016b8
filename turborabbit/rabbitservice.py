"""A ready-to-use messaging service: pool, publisher, topologer and consumers together."""

from __future__ import annotations

import queue
import socket
import threading
import uuid
from collections.abc import Callable
from typing import Any

from turborabbit.configs import ConsumerConfig, RabbitSeasoning
from turborabbit.connectionpool import ConnectionPool
from turborabbit.consumer import Consumer
from turborabbit.crypto import get_hash_with_argon
from turborabbit.letter import Envelope, Letter
from turborabbit.message import PublishReceipt
from turborabbit.payload import create_payload, create_wrapped_payload
from turborabbit.publisher import Publisher
from turborabbit.topologer import Topologer

_BUFFER_SIZE = 1000
_MONITOR_INTERVAL = 0.2
_CONFIRMATION_TIMEOUT = 0.3
_HASH_LENGTH = 32
_CONTENT_TYPE = "application/json"
_PERSISTENT = 2


class RabbitService:
    """Everything needed to talk to a broker, with background receipt and error handling.

    Failed publishes are retried through the auto-publisher unless a receipt
    handler is given; errors are printed unless an error handler is given.
    """

    def __init__(
        self,
        publisher: Publisher,
        config: RabbitSeasoning,
        passphrase: str = "",
        salt: str = "",
        process_publish_receipts: Callable[[PublishReceipt], Any] | None = None,
        process_error: Callable[[BaseException], Any] | None = None,
    ) -> None:
        self.config = config
        self.connection_pool = publisher.connection_pool
        self.publisher = publisher
        self.topologer = Topologer(self.connection_pool)
        self.encryption_configured = False
        self._central_err: queue.Queue[BaseException] = queue.Queue(_BUFFER_SIZE)
        self._consumers: dict[str, Consumer] = {}
        self._shutdown = threading.Event()
        self._monitor_interval = _MONITOR_INTERVAL
        self._threads: list[threading.Thread] = []

        self._create_consumers(config.consumer_configs or {})

        encryption = config.encryption_config
        if encryption is not None and encryption.enabled and passphrase and salt:
            encryption.hashkey = get_hash_with_argon(
                passphrase,
                salt,
                encryption.time_consideration,
                encryption.memory_multiplier,
                encryption.threads,
                _HASH_LENGTH,
            )
            self.encryption_configured = True

        receipt_handler = process_publish_receipts or self._retry_failed_receipt
        error_handler = process_error or self._print_error
        self._spawn(self._collect_consumer_errors)
        self._spawn(self._drain, self.publisher.publish_receipts(), receipt_handler)
        self._spawn(self._drain, self._central_err, error_handler)

        self.publisher.start_auto_publishing()

    @classmethod
    def create(
        cls,
        config: RabbitSeasoning,
        passphrase: str,
        salt: str,
        process_publish_receipts: Callable[[PublishReceipt], Any] | None,
        process_error: Callable[[BaseException], Any] | None,
    ) -> RabbitService:
        """Build a connection pool from the configuration and a service on top of it."""
        connection_pool = ConnectionPool(config.pool_config)
        return cls.with_connection_pool(
            connection_pool, config, passphrase, salt, process_publish_receipts, process_error
        )

    @classmethod
    def with_connection_pool(
        cls,
        connection_pool: Any,
        config: RabbitSeasoning,
        passphrase: str,
        salt: str,
        process_publish_receipts: Callable[[PublishReceipt], Any] | None,
        process_error: Callable[[BaseException], Any] | None,
    ) -> RabbitService:
        """Build a service around an existing connection pool."""
        publisher = Publisher.from_config(config, connection_pool)
        return cls(publisher, config, passphrase, salt, process_publish_receipts, process_error)

    def _spawn(self, target: Callable[..., Any], *args: Any) -> None:
        thread = threading.Thread(target=target, args=args, daemon=True)
        self._threads.append(thread)
        thread.start()

    def _create_consumers(self, consumer_configs: dict[str, ConsumerConfig]) -> None:
        try:
            host_name: str | None = socket.gethostname()
        except OSError:
            host_name = None
        for name, consumer_config in consumer_configs.items():
            consumer = Consumer.from_config(consumer_config, self.connection_pool)
            if host_name:
                consumer.consumer_name = f"{host_name}-{consumer.consumer_name}"
            self._consumers[name] = consumer

    def _check_running(self, action: str) -> None:
        if self._shutdown.is_set():
            raise RuntimeError(f"unable to {action} as service shutdown triggered")

    @staticmethod
    def _check_address(exchange_name: str, routing_key: str) -> None:
        if not exchange_name and not routing_key:
            raise ValueError(
                "can't have a nil input or an empty exchangename with empty routing key"
            )

    def _build_body(
        self, input_data: Any, letter_id: uuid.UUID, metadata: str, wrap_payload: bool
    ) -> bytes:
        if wrap_payload:
            return create_wrapped_payload(
                input_data,
                letter_id,
                metadata,
                self.config.compression_config,
                self.config.encryption_config,
            )
        return create_payload(
            input_data, self.config.compression_config, self.config.encryption_config
        )

    @staticmethod
    def _letter(
        letter_id: uuid.UUID,
        body: bytes,
        exchange_name: str,
        routing_key: str,
        headers: dict[str, Any] | None,
    ) -> Letter:
        return Letter(
            letter_id=letter_id,
            retry_count=0,
            body=body,
            envelope=Envelope(
                exchange=exchange_name,
                routing_key=routing_key,
                content_type=_CONTENT_TYPE,
                mandatory=False,
                immediate=False,
                delivery_mode=_PERSISTENT,
                headers=headers,
            ),
        )

    def publish_with_confirmation(
        self,
        input_data: Any,
        exchange_name: str,
        routing_key: str,
        metadata: str,
        wrap_payload: bool,
        headers: dict[str, Any] | None,
    ) -> None:
        """Build a payload and publish it on a transient channel, waiting for a confirmation."""
        self._check_running("publish")
        if input_data is None:
            raise ValueError("can't have a nil body or an empty exchangename with empty routing key")
        self._check_address(exchange_name, routing_key)

        letter_id = uuid.uuid4()
        body = self._build_body(input_data, letter_id, metadata, wrap_payload)
        self.publisher.publish_with_confirmation_transient(
            self._letter(letter_id, body, exchange_name, routing_key, headers),
            _CONFIRMATION_TIMEOUT,
        )

    def publish(
        self,
        input_data: Any,
        exchange_name: str,
        routing_key: str,
        metadata: str,
        wrap_payload: bool,
        headers: dict[str, Any] | None,
    ) -> None:
        """Build a payload, optionally wrapped, and publish it once."""
        self._check_running("publish")
        if input_data is None:
            raise ValueError(
                "can't have a nil input or an empty exchangename with empty routing key"
            )
        self._check_address(exchange_name, routing_key)

        letter_id = uuid.uuid4()
        body = self._build_body(input_data, letter_id, metadata, wrap_payload)
        self.publisher.publish(
            self._letter(letter_id, body, exchange_name, routing_key, headers), False
        )

    def publish_data(
        self,
        data: bytes,
        exchange_name: str,
        routing_key: str,
        headers: dict[str, Any] | None,
    ) -> None:
        """Publish raw bytes once."""
        self._check_running("publish")
        if data is None:
            raise ValueError(
                "can't have a nil input or an empty exchangename with empty routing key"
            )
        self._check_address(exchange_name, routing_key)
        self.publisher.publish(
            self._letter(uuid.uuid4(), data, exchange_name, routing_key, headers), False
        )

    def publish_letter(self, letter: Letter) -> None:
        """Publish a ready-made letter once, giving it an id if it has none."""
        self._check_running("publish")
        if letter.letter_id is None:
            letter.letter_id = uuid.uuid4()
        self.publisher.publish(letter, False)

    def queue_letter(self, letter: Letter) -> None:
        """Queue a letter for the auto-publisher, giving it an id if it has none."""
        self._check_running("queue letter")
        if letter.letter_id is None:
            letter.letter_id = uuid.uuid4()
        if not self.publisher.queue_letter(letter):
            raise RuntimeError(
                "unable to queue letter... most likely cause is autopublisher chan was shut"
            )

    def get_consumer(self, consumer_name: str) -> Consumer:
        """Return the consumer built from the named configuration."""
        try:
            return self._consumers[consumer_name]
        except KeyError:
            raise KeyError(f"consumer {consumer_name!r} was not found") from None

    def get_consumer_config(self, consumer_name: str) -> ConsumerConfig:
        """Return the configuration of the named consumer."""
        return self.get_consumer(consumer_name).config

    def central_err(self) -> queue.Queue:
        """The queue collecting errors from publishing and consuming."""
        return self._central_err

    def shutdown(self, stop_consumers: bool) -> None:
        """Stop background work, optionally stop consumers, and shut the pool down."""
        self.publisher.shutdown(False)
        self._shutdown.set()
        for thread in self._threads:
            thread.join(timeout=self._monitor_interval * 5)

        if stop_consumers:
            for consumer in self._consumers.values():
                try:
                    consumer.stop_consuming(True, True)
                except RuntimeError as exc:
                    self._central_err.put(exc)

        self.connection_pool.shutdown()

    def _drain(self, source: queue.Queue, handler: Callable[[Any], Any]) -> None:
        while not self._shutdown.is_set():
            try:
                item = source.get(timeout=self._monitor_interval)
            except queue.Empty:
                continue
            handler(item)

    def _collect_consumer_errors(self) -> None:
        while not self._shutdown.is_set():
            for consumer in list(self._consumers.values()):
                errors = consumer.errors()
                while not self._shutdown.is_set():
                    try:
                        self._central_err.put(errors.get_nowait())
                    except queue.Empty:
                        break
            self._shutdown.wait(self._monitor_interval)

    def _retry_failed_receipt(self, receipt: PublishReceipt) -> None:
        if receipt.success:
            return
        letter = receipt.failed_letter
        if letter is None:
            self._central_err.put(
                RuntimeError(
                    f"failed to publish a LetterID {receipt.letter_id} and unable to retry "
                    "as a copy of the letter was not received"
                )
            )
            return
        if letter.retry_count < self.config.publisher_config.max_retry_count:
            letter.retry_count += 1
            self._central_err.put(
                RuntimeError(
                    f"failed to publish LetterID {receipt.letter_id}... retrying "
                    f"(count: {letter.retry_count})"
                )
            )
            if not self.publisher.queue_letter(letter):
                self._central_err.put(
                    RuntimeError(
                        f"failed to publish a LetterID {receipt.letter_id} and "
                        "autopublisher has been shutdown"
                    )
                )
        else:
            self._central_err.put(
                RuntimeError(
                    f"failed to retry publish a LetterID {receipt.letter_id}, "
                    "it has exhausted all of it's retries"
                )
            )

    @staticmethod
    def _print_error(error: BaseException) -> None:
        print(f"TCR Central Err: {error}")