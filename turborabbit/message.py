"""Received messages, publish receipts, returns and confirmations."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from turborabbit.letter import Letter
from turborabbit.utils import json_utc_timestamp_from_time

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass
class PublishReceipt:
    """The outcome of one publish, carrying the letter back on failure."""

    letter_id: uuid.UUID
    failed_letter: Letter | None = None
    success: bool = False
    error: BaseException | None = None

    def to_string(self) -> str:
        if self.success:
            return f"[LetterID: {self.letter_id}] - Publish successful.\r\n"
        return (
            f"[LetterID: {self.letter_id}] - Publish failed.\r\n"
            f"Error: {self.error}\r\n"
        )

    def __str__(self) -> str:
        return self.to_string()


@dataclass
class Delivery:
    """A message delivered by the broker.

    ``acknowledger`` is the channel it arrived on; it must offer
    ``basic_ack``, ``basic_nack`` and ``basic_reject``.
    """

    body: bytes = b""
    delivery_tag: int = 0
    acknowledger: Any = None
    exchange: str = ""
    routing_key: str = ""
    redelivered: bool = False
    consumer_tag: str = ""
    content_type: str = ""
    content_encoding: str = ""
    headers: dict[str, Any] | None = None
    delivery_mode: int = 0
    priority: int = 0
    correlation_id: str = ""
    reply_to: str = ""
    expiration: str = ""
    message_id: str = ""
    timestamp: datetime | None = None
    type: str = ""
    user_id: str = ""
    app_id: str = ""


@dataclass
class ReceivedMessage:
    """A received payload that can be acknowledged on its original channel."""

    is_ackable: bool
    body: bytes
    message_id: str
    application_id: str
    publish_date: str
    delivery: Delivery

    @classmethod
    def from_delivery(cls, is_ackable: bool, delivery: Delivery) -> ReceivedMessage:
        return cls(
            is_ackable=is_ackable,
            body=delivery.body,
            message_id=delivery.message_id,
            application_id=delivery.app_id,
            publish_date=json_utc_timestamp_from_time(delivery.timestamp or _ZERO_TIME),
            delivery=delivery,
        )

    def _channel(self, action: str) -> Any:
        if not self.is_ackable:
            raise RuntimeError(f"can't {action}, not an ackable message")
        if self.delivery.acknowledger is None:
            raise RuntimeError(f"can't {action}, internal channel is nil")
        return self.delivery.acknowledger

    def acknowledge(self) -> None:
        """Acknowledge on the channel the message arrived on."""
        channel = self._channel("acknowledge")
        channel.basic_ack(delivery_tag=self.delivery.delivery_tag, multiple=False)

    def nack(self, requeue: bool) -> None:
        """Negatively acknowledge on the channel the message arrived on."""
        channel = self._channel("nack")
        channel.basic_nack(
            delivery_tag=self.delivery.delivery_tag, multiple=False, requeue=requeue
        )

    def reject(self, requeue: bool) -> None:
        """Reject on the channel the message arrived on."""
        channel = self._channel("reject")
        channel.basic_reject(delivery_tag=self.delivery.delivery_tag, requeue=requeue)


@dataclass
class ErrorMessage:
    """A broker error with its code and whether it may be recovered from."""

    code: int = 0
    reason: str = ""
    server: bool = False
    recover: bool = False

    def __str__(self) -> str:
        server = str(bool(self.server)).lower()
        recover = str(bool(self.recover)).lower()
        return (
            f"[ErrorCode: {self.code}] Reason: {self.reason} \r\n"
            f"[Server Initiated: {server}]\r\n"
            f"[Recoverable: {recover}]\r\n"
        )


@dataclass
class ReturnMessage:
    """A message the broker returned as unroutable."""

    reply_code: int = 0
    reply_text: str = ""
    exchange: str = ""
    routing_key: str = ""
    content_type: str = ""
    content_encoding: str = ""
    headers: dict[str, Any] = field(default_factory=dict)
    delivery_mode: int = 0
    priority: int = 0
    correlation_id: str = ""
    reply_to: str = ""
    expiration: str = ""
    message_id: str = ""
    timestamp: datetime | None = None
    type: str = ""
    user_id: str = ""
    app_id: str = ""
    body: bytes = b""


@dataclass
class PublishConfirmation:
    """A broker confirmation for a published message."""

    delivery_tag: int = 0
    acked: bool = False