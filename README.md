# turborabbit

A RabbitMQ client library, built on `pika`, for resilient messaging:
pooled connections that are reconnected when they fail, cached
confirm-mode channels, background consumers, background publishing with
retries, topology building from JSON, and optional compression and
encryption of payloads.

## Installation

```
pip install turborabbit
```

For running the tests:

```
pip install "turborabbit[test]"
pytest
```

## Configuration

Settings are read from a JSON document whose keys mirror the configuration
classes in `turborabbit.configs` (`PoolConfig`, `TLSConfig`,
`ConsumerConfig`, `PublisherConfig`, `CompressionConfig`,
`EncryptionConfig`), gathered under a `RabbitSeasoning`:

```python
from turborabbit.payload import convert_json_file_to_config

config = convert_json_file_to_config("seasoning.json")
```

Keys are matched exactly first and then without regard to case. Every class
also has a `from_dict` class method for building it from an already parsed
mapping.

A topology file (exchanges, queues and their bindings) loads the same way
with `convert_json_file_to_topology_config`, giving a `TopologyConfig` of
`Exchange`, `Queue`, `QueueBinding` and `ExchangeBinding` entries from
`turborabbit.topology`.

## Connection pool

```python
from turborabbit.connectionpool import ConnectionPool

pool = ConnectionPool(config.pool_config)
chan_host = pool.get_channel_from_pool()
# ... use chan_host.channel ...
pool.return_channel(chan_host, False)
pool.shutdown()
```

`heartbeat` and `connection_timeout` are in seconds and must not be zero;
`max_connection_count` must not be zero either, otherwise `ValueError` is
raised. `sleep_on_error_interval` is in milliseconds.

Connections are handed out round robin by `get_connection`; a connection
that is closed, reported an error, or was flagged when handed back with
`return_connection(host, True)` is reconnected before it is handed out
again. `get_transient_channel(ackable)` opens an unmanaged channel, with
publisher confirms when `ackable` is true.

`ConnectionPool` also takes optional `error_handler` and `unhealthy_handler`
callables, and a `connection_factory` that turns `pika` connection
parameters into a connection (by default `pika.BlockingConnection`). When a
`TLSConfig` with `enable_tls` is set, `turborabbit.tls.create_tls_config`
builds the client TLS context from its certificate files.

## Topology

```python
from turborabbit.topologer import Topologer
from turborabbit.payload import convert_json_file_to_topology_config

topologer = Topologer(pool)
topologer.build_topology(convert_json_file_to_topology_config("topology.json"), False)
```

Exchanges are built first, then queues, queue bindings and exchange
bindings; the first error is raised unless errors are ignored. A queue of
type `quorum` is forced durable, non-exclusive and not auto-deleted.
`Topologer` also declares, deletes, binds, unbinds and purges single
exchanges and queues.

## Publishing

```python
from turborabbit.publisher import Publisher
from turborabbit.letters import create_letter

publisher = Publisher.from_config(config, pool)
letter = create_letter("", "my.queue", b'{"hello": "world"}')
publisher.publish_with_confirmation(letter, 0.3)

receipt = publisher.publish_receipts().get()
print(receipt.to_string())
```

`Publisher.from_config` reads its intervals in milliseconds from the
configuration and raises a zero `max_retry_count` to 5; on the publisher
itself timeouts are in seconds, and a timeout of 0 uses the configured one.

- `publish` / `publish_with_error` send once on a cached channel.
- `publish_with_transient` sends once on a new channel.
- `publish_with_confirmation` / `publish_with_confirmation_error` republish
  until the broker acknowledges, or report / raise `TimeoutError`.
- `publish_with_confirmation_context` and its `_error` variant stop when a
  `threading.Event` is set.
- `publish_with_confirmation_transient` does the same on new channels.

`start_auto_publishing` together with `queue_letter` / `queue_letters`
sends queued letters in the background with confirmations.
`publish_receipts()` returns a `queue.Queue` of `PublishReceipt` objects.

## Consuming

```python
from turborabbit.consumer import Consumer

consumer = Consumer.from_config(config.consumer_configs["MyConsumer"], pool)
consumer.start_consuming_with_action(lambda msg: msg.acknowledge())
# ...
consumer.stop_consuming(False, False)
```

Without an action, messages are put on `consumer.received_messages()`, a
`queue.Queue` of `ReceivedMessage` objects that can `acknowledge`, `nack`
or `reject`. Channel failures appear on `consumer.errors()`. `get` and
`get_batch` fetch auto-acknowledged messages one at a time.

## Service

`RabbitService` ties everything together: one pool, a publisher that
retries failed letters, a topologer, consumers built from the configuration
(named after the host), and payloads that can be wrapped, compressed (gzip
or zstd) and encrypted (AES-GCM with an Argon2id-derived key).

```python
from turborabbit.rabbitservice import RabbitService

service = RabbitService.create(config, "secret", "placeholder", None, None)
service.publish({"hello": "world"}, "", "my.queue", "", True, None)
service.shutdown(True)
```

Without a receipt handler, failed letters are queued again until
`max_retry_count` is reached; without an error handler, errors from
`central_err()` are printed.

## Payload helpers

`turborabbit.payload` provides `create_payload`, `create_wrapped_payload`
and `read_payload`; `turborabbit.compression` and `turborabbit.crypto`
expose the underlying gzip/zstd and AES-GCM/Argon2id functions.
`turborabbit.letters` makes ready-made and mock letters, and
`turborabbit.random` random strings and bytes for them.

## What it does not do

turborabbit is a library only: it installs no command-line program and
runs no broker. It needs a reachable RabbitMQ server for anything beyond
payload building, compression, encryption and configuration loading.