"""Declaring and removing exchanges, queues and bindings through a connection pool."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from turborabbit.configs import TopologyConfig
from turborabbit.topology import Exchange, ExchangeBinding, Queue, QueueBinding

QUEUE_TYPE_QUORUM = "quorum"
QUEUE_TYPE_CLASSIC = "classic"


def _message_count(frame: Any) -> int:
    if isinstance(frame, int):
        return frame
    return int(frame.method.message_count)


class Topologer:
    """Builds broker topology on transient channels taken from a connection pool.

    The ``no_wait`` flags are accepted for configuration compatibility; the
    blocking client always waits for the broker's reply.
    """

    def __init__(self, connection_pool: Any) -> None:
        self.connection_pool = connection_pool

    def _run(self, operation: Callable[[Any], Any]) -> Any:
        channel = self.connection_pool.get_transient_channel(False)
        try:
            return operation(channel)
        finally:
            try:
                channel.close()
            except Exception:
                pass

    def build_topology(self, config: TopologyConfig, ignore_errors: bool) -> None:
        """Build exchanges, queues, queue bindings then exchange bindings."""
        self.build_exchanges(config.exchanges, ignore_errors)
        self.build_queues(config.queues, ignore_errors)
        self.bind_queues(config.queue_bindings, ignore_errors)
        self.bind_exchanges(config.exchange_bindings, ignore_errors)

    @staticmethod
    def _each(items: Iterable[Any], action: Callable[[Any], Any], ignore_errors: bool) -> None:
        for item in items or ():
            try:
                action(item)
            except Exception:
                if not ignore_errors:
                    raise

    def build_exchanges(self, exchanges: Sequence[Exchange], ignore_errors: bool) -> None:
        """Declare each exchange, stopping on the first error unless ignored."""
        self._each(exchanges, self.create_exchange_from_config, ignore_errors)

    def build_queues(self, queues: Sequence[Queue], ignore_errors: bool) -> None:
        """Declare each queue, stopping on the first error unless ignored."""
        self._each(queues, self.create_queue_from_config, ignore_errors)

    def bind_queues(self, bindings: Sequence[QueueBinding], ignore_errors: bool) -> None:
        """Bind each queue to its exchange, stopping on the first error unless ignored."""
        self._each(bindings, self.queue_bind, ignore_errors)

    def bind_exchanges(
        self, bindings: Sequence[ExchangeBinding], ignore_errors: bool
    ) -> None:
        """Bind each exchange to its parent, stopping on the first error unless ignored."""
        self._each(bindings, self.exchange_bind, ignore_errors)

    def create_exchange(
        self,
        exchange_name: str,
        exchange_type: str,
        passive_declare: bool,
        durable: bool,
        auto_delete: bool,
        internal: bool,
        no_wait: bool,
        args: dict[str, Any] | None,
    ) -> None:
        """Declare an exchange, or check that it exists when passive."""
        self._run(
            lambda channel: channel.exchange_declare(
                exchange=exchange_name,
                exchange_type=exchange_type,
                passive=passive_declare,
                durable=durable,
                auto_delete=auto_delete,
                internal=internal,
                arguments=None if args is None else dict(args),
            )
        )

    def create_exchange_from_config(self, exchange: Exchange) -> None:
        """Declare an exchange described by an Exchange."""
        self.create_exchange(
            exchange.name,
            exchange.type,
            exchange.passive_declare,
            exchange.durable,
            exchange.auto_delete,
            exchange.internal_only,
            exchange.no_wait,
            exchange.args,
        )

    def exchange_bind(self, exchange_binding: ExchangeBinding) -> None:
        """Bind an exchange to its parent exchange."""
        self._run(
            lambda channel: channel.exchange_bind(
                destination=exchange_binding.exchange_name,
                source=exchange_binding.parent_exchange_name,
                routing_key=exchange_binding.routing_key,
                arguments=exchange_binding.args,
            )
        )

    def exchange_delete(self, exchange_name: str, if_unused: bool, no_wait: bool) -> None:
        """Delete an exchange from the broker."""
        self._run(
            lambda channel: channel.exchange_delete(
                exchange=exchange_name, if_unused=if_unused
            )
        )

    def exchange_unbind(
        self,
        exchange_name: str,
        routing_key: str,
        parent_exchange_name: str,
        no_wait: bool,
        args: dict[str, Any] | None,
    ) -> None:
        """Remove the binding of an exchange to its parent exchange."""
        self._run(
            lambda channel: channel.exchange_unbind(
                destination=exchange_name,
                source=parent_exchange_name,
                routing_key=routing_key,
                arguments=None if args is None else dict(args),
            )
        )

    def create_queue(
        self,
        queue_name: str,
        passive_declare: bool,
        durable: bool,
        auto_delete: bool,
        exclusive: bool,
        no_wait: bool,
        args: dict[str, Any] | None,
    ) -> None:
        """Declare a queue, or check that it exists when passive."""
        self._run(
            lambda channel: channel.queue_declare(
                queue=queue_name,
                passive=passive_declare,
                durable=durable,
                exclusive=exclusive,
                auto_delete=auto_delete,
                arguments=None if args is None else dict(args),
            )
        )

    def create_queue_from_config(self, queue: Queue) -> None:
        """Declare a queue described by a Queue.

        A quorum queue is forced durable, shared and waited for, and gets an
        ``x-queue-type`` argument when it has no arguments of its own.
        """
        if queue.type == QUEUE_TYPE_QUORUM:
            queue.exclusive = False
            queue.durable = True
            queue.no_wait = False
            queue.auto_delete = False
            if queue.args is None:
                queue.args = {"x-queue-type": queue.type}

        self.create_queue(
            queue.name,
            queue.passive_declare,
            queue.durable,
            queue.auto_delete,
            queue.exclusive,
            queue.no_wait,
            queue.args,
        )

    def queue_delete(
        self, name: str, if_unused: bool, if_empty: bool, no_wait: bool
    ) -> int:
        """Delete a queue and its bindings; return the number of messages dropped."""
        frame = self._run(
            lambda channel: channel.queue_delete(
                queue=name, if_unused=if_unused, if_empty=if_empty
            )
        )
        return _message_count(frame)

    def queue_bind(self, queue_binding: QueueBinding) -> None:
        """Bind a queue to an exchange."""
        self._run(
            lambda channel: channel.queue_bind(
                queue=queue_binding.queue_name,
                exchange=queue_binding.exchange_name,
                routing_key=queue_binding.routing_key,
                arguments=queue_binding.args,
            )
        )

    def purge_queues(self, queue_names: Sequence[str], no_wait: bool) -> int:
        """Purge every named queue and return the total of messages removed."""
        if not queue_names:
            raise ValueError("can't purge an empty array of queues")
        return sum(self.purge_queue(name, no_wait) for name in queue_names)

    def purge_queue(self, queue_name: str, no_wait: bool) -> int:
        """Remove all unacknowledged-free messages from a queue and return the count."""
        frame = self._run(lambda channel: channel.queue_purge(queue=queue_name))
        return _message_count(frame)

    def unbind_queue(
        self,
        queue_name: str,
        routing_key: str,
        exchange_name: str,
        args: dict[str, Any] | None,
    ) -> None:
        """Remove the binding of a queue to an exchange."""
        self._run(
            lambda channel: channel.queue_unbind(
                queue=queue_name,
                exchange=exchange_name,
                routing_key=routing_key,
                arguments=None if args is None else dict(args),
            )
        )