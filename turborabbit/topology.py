"""Declarative descriptions of exchanges, queues and their bindings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

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


def _args(data: Mapping[str, Any]) -> dict[str, Any] | None:
    value = _value(data, "Args", Mapping, None)
    return None if value is None else dict(value)


@dataclass
class Exchange:
    """An exchange to declare."""

    name: str = ""
    type: str = ""
    passive_declare: bool = False
    durable: bool = False
    auto_delete: bool = False
    internal_only: bool = False
    no_wait: bool = False
    args: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Exchange:
        return cls(
            name=_value(data, "Name", str, ""),
            type=_value(data, "Type", str, ""),
            passive_declare=_value(data, "PassiveDeclare", bool, False),
            durable=_value(data, "Durable", bool, False),
            auto_delete=_value(data, "AutoDelete", bool, False),
            internal_only=_value(data, "InternalOnly", bool, False),
            no_wait=_value(data, "NoWait", bool, False),
            args=_args(data),
        )


@dataclass
class Queue:
    """A queue to declare; a quorum type overrides the classic-only flags."""

    name: str = ""
    passive_declare: bool = False
    durable: bool = False
    auto_delete: bool = False
    exclusive: bool = False
    no_wait: bool = False
    type: str = ""
    args: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Queue:
        return cls(
            name=_value(data, "Name", str, ""),
            passive_declare=_value(data, "PassiveDeclare", bool, False),
            durable=_value(data, "Durable", bool, False),
            auto_delete=_value(data, "AutoDelete", bool, False),
            exclusive=_value(data, "Exclusive", bool, False),
            no_wait=_value(data, "NoWait", bool, False),
            type=_value(data, "Type", str, ""),
            args=_args(data),
        )


@dataclass
class QueueBinding:
    """A binding of a queue to an exchange."""

    queue_name: str = ""
    exchange_name: str = ""
    routing_key: str = ""
    no_wait: bool = False
    args: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QueueBinding:
        return cls(
            queue_name=_value(data, "QueueName", str, ""),
            exchange_name=_value(data, "ExchangeName", str, ""),
            routing_key=_value(data, "RoutingKey", str, ""),
            no_wait=_value(data, "NoWait", bool, False),
            args=_args(data),
        )


@dataclass
class ExchangeBinding:
    """A binding of an exchange to a parent exchange."""

    exchange_name: str = ""
    parent_exchange_name: str = ""
    routing_key: str = ""
    no_wait: bool = False
    args: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExchangeBinding:
        return cls(
            exchange_name=_value(data, "ExchangeName", str, ""),
            parent_exchange_name=_value(data, "ParentExchangeName", str, ""),
            routing_key=_value(data, "RoutingKey", str, ""),
            no_wait=_value(data, "NoWait", bool, False),
            args=_args(data),
        )