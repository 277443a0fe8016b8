"""Configuration values for pools, consumers, publishers and payload handling."""

from __future__ import annotations

import base64
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from turborabbit.topology import Exchange, ExchangeBinding, Queue, QueueBinding

_MISSING = object()


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    """Find a key exactly, falling back to a case-insensitive match."""
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return _MISSING


def _value(data: Mapping[str, Any], key: str, kind: type, default: Any) -> Any:
    value = _lookup(data, key)
    if value is _MISSING or value is None:
        return default
    if (kind is int and isinstance(value, bool)) or not isinstance(value, kind):
        raise TypeError(
            f"{key!r} must be of type {kind.__name__}, not {type(value).__name__}"
        )
    return value


def _nested(data: Mapping[str, Any], key: str, cls: Any) -> Any:
    value = _value(data, key, Mapping, None)
    return None if value is None else cls.from_dict(value)


def _nested_list(data: Mapping[str, Any], key: str, cls: Any) -> list[Any]:
    items = _value(data, key, list, [])
    result = []
    for item in items:
        if not isinstance(item, Mapping):
            raise TypeError(f"entries of {key!r} must be mappings")
        result.append(cls.from_dict(item))
    return result


@dataclass
class TLSConfig:
    """Settings for connecting over AMQPS."""

    enable_tls: bool = False
    pem_cert_location: str = ""
    local_cert_location: str = ""
    cert_server_name: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TLSConfig:
        return cls(
            enable_tls=_value(data, "EnableTLS", bool, False),
            pem_cert_location=_value(data, "PEMCertLocation", str, ""),
            local_cert_location=_value(data, "LocalCertLocation", str, ""),
            cert_server_name=_value(data, "CertServerName", str, ""),
        )


@dataclass
class PoolConfig:
    """Settings for creating a connection pool."""

    application_name: str = ""
    uri: str = ""
    heartbeat: int = 0
    connection_timeout: int = 0
    sleep_on_error_interval: int = 0
    max_connection_count: int = 0
    max_cache_channel_count: int = 0
    tls_config: TLSConfig | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PoolConfig:
        return cls(
            application_name=_value(data, "ApplicationName", str, ""),
            uri=_value(data, "URI", str, ""),
            heartbeat=_value(data, "Heartbeat", int, 0),
            connection_timeout=_value(data, "ConnectionTimeout", int, 0),
            sleep_on_error_interval=_value(data, "SleepOnErrorInterval", int, 0),
            max_connection_count=_value(data, "MaxConnectionCount", int, 0),
            max_cache_channel_count=_value(data, "MaxCacheChannelCount", int, 0),
            tls_config=_nested(data, "TLSConfig", TLSConfig),
        )


@dataclass
class ConsumerConfig:
    """Settings for one consumer."""

    enabled: bool = False
    queue_name: str = ""
    consumer_name: str = ""
    auto_ack: bool = False
    exclusive: bool = False
    no_wait: bool = False
    args: dict[str, Any] | None = None
    qos_count_override: int = 0
    sleep_on_error_interval: int = 0
    sleep_on_idle_interval: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConsumerConfig:
        args = _value(data, "Args", Mapping, None)
        return cls(
            enabled=_value(data, "Enabled", bool, False),
            queue_name=_value(data, "QueueName", str, ""),
            consumer_name=_value(data, "ConsumerName", str, ""),
            auto_ack=_value(data, "AutoAck", bool, False),
            exclusive=_value(data, "Exclusive", bool, False),
            no_wait=_value(data, "NoWait", bool, False),
            args=None if args is None else dict(args),
            qos_count_override=_value(data, "QosCountOverride", int, 0),
            sleep_on_error_interval=_value(data, "SleepOnErrorInterval", int, 0),
            sleep_on_idle_interval=_value(data, "SleepOnIdleInterval", int, 0),
        )


@dataclass
class PublisherConfig:
    """Settings shared by all publishers."""

    auto_ack: bool = False
    sleep_on_idle_interval: int = 0
    sleep_on_error_interval: int = 0
    publish_time_out_interval: int = 0
    max_retry_count: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PublisherConfig:
        return cls(
            auto_ack=_value(data, "AutoAck", bool, False),
            sleep_on_idle_interval=_value(data, "SleepOnIdleInterval", int, 0),
            sleep_on_error_interval=_value(data, "SleepOnErrorInterval", int, 0),
            publish_time_out_interval=_value(data, "PublishTimeOutInterval", int, 0),
            max_retry_count=_value(data, "MaxRetryCount", int, 0),
        )


@dataclass
class CompressionConfig:
    """Whether payloads are compressed, and with which algorithm."""

    enabled: bool = False
    type: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CompressionConfig:
        return cls(
            enabled=_value(data, "Enabled", bool, False),
            type=_value(data, "Type", str, ""),
        )


@dataclass
class EncryptionConfig:
    """Whether payloads are encrypted, and the key derivation parameters."""

    enabled: bool = False
    type: str = ""
    hashkey: bytes | None = None
    time_consideration: int = 0
    memory_multiplier: int = 0
    threads: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EncryptionConfig:
        raw_key = _lookup(data, "Hashkey")
        if raw_key is _MISSING or raw_key is None:
            hashkey = None
        elif isinstance(raw_key, (bytes, bytearray)):
            hashkey = bytes(raw_key)
        elif isinstance(raw_key, str):
            hashkey = base64.b64decode(raw_key, validate=True)
        else:
            raise TypeError("'Hashkey' must be a base64 string or bytes")
        return cls(
            enabled=_value(data, "Enabled", bool, False),
            type=_value(data, "Type", str, ""),
            hashkey=hashkey,
            time_consideration=_value(data, "TimeConsideration", int, 0),
            memory_multiplier=_value(data, "MemoryMultiplier", int, 0),
            threads=_value(data, "Threads", int, 0),
        )


@dataclass
class TopologyConfig:
    """A whole topology: exchanges, queues and bindings."""

    exchanges: list[Exchange] = field(default_factory=list)
    queues: list[Queue] = field(default_factory=list)
    queue_bindings: list[QueueBinding] = field(default_factory=list)
    exchange_bindings: list[ExchangeBinding] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TopologyConfig:
        return cls(
            exchanges=_nested_list(data, "Exchanges", Exchange),
            queues=_nested_list(data, "Queues", Queue),
            queue_bindings=_nested_list(data, "QueueBindings", QueueBinding),
            exchange_bindings=_nested_list(data, "ExchangeBindings", ExchangeBinding),
        )


@dataclass
class RabbitSeasoning:
    """The complete service configuration."""

    encryption_config: EncryptionConfig | None = None
    compression_config: CompressionConfig | None = None
    pool_config: PoolConfig | None = None
    consumer_configs: dict[str, ConsumerConfig] = field(default_factory=dict)
    publisher_config: PublisherConfig | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RabbitSeasoning:
        raw_consumers = _value(data, "ConsumerConfigs", Mapping, {})
        consumers = {}
        for name, value in raw_consumers.items():
            if not isinstance(value, Mapping):
                raise TypeError(f"consumer config {name!r} must be a mapping")
            consumers[name] = ConsumerConfig.from_dict(value)
        return cls(
            encryption_config=_nested(data, "EncryptionConfig", EncryptionConfig),
            compression_config=_nested(data, "CompressionConfig", CompressionConfig),
            pool_config=_nested(data, "PoolConfig", PoolConfig),
            consumer_configs=consumers,
            publisher_config=_nested(data, "PublisherConfig", PublisherConfig),
        )