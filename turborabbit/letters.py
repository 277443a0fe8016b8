"""Factories for ready-made and mock letters."""

from __future__ import annotations

import json
import random
import uuid

from turborabbit.letter import Envelope, Letter, ModdedBody, WrappedBody
from turborabbit.random import RANDOM_MAX, RANDOM_MIN, random_bytes
from turborabbit.utils import json_utc_timestamp

_CONTENT_TYPE = "application/json"


def create_letter(exchange_name: str, routing_key: str, body: bytes) -> Letter:
    """Create a simple letter for publishing."""
    envelope = Envelope(
        exchange=exchange_name, routing_key=routing_key, content_type=_CONTENT_TYPE
    )
    return Letter(letter_id=uuid.uuid4(), retry_count=3, body=body, envelope=envelope)


def create_mock_letter(
    exchange_name: str, routing_key: str, body: bytes | None
) -> Letter:
    """Create a persistent mock letter; a missing body becomes ``hello world``."""
    if body is None:
        body = b"hello world"
    envelope = Envelope(
        exchange=exchange_name,
        routing_key=routing_key,
        content_type=_CONTENT_TYPE,
        delivery_mode=2,
    )
    return Letter(letter_id=uuid.uuid4(), retry_count=3, body=body, envelope=envelope)


def _random_body() -> bytes:
    return random_bytes(random.randrange(RANDOM_MIN, RANDOM_MAX))


def create_mock_random_letter(routing_key: str) -> Letter:
    """Create a mock letter with a random body of random size and a test header."""
    envelope = Envelope(
        exchange="",
        routing_key=routing_key,
        content_type=_CONTENT_TYPE,
        delivery_mode=2,
        headers={"x-tcr-testheader": "HelloWorldHeader"},
    )
    return Letter(
        letter_id=uuid.uuid4(), retry_count=0, body=_random_body(), envelope=envelope
    )


def create_mock_random_wrapped_body_letter(routing_key: str) -> Letter:
    """Create a mock letter whose body is a JSON WrappedBody around random data."""
    envelope = Envelope(
        exchange="",
        routing_key=routing_key,
        content_type=_CONTENT_TYPE,
        delivery_mode=2,
    )
    wrapped = WrappedBody(
        letter_id=uuid.uuid4(),
        body=ModdedBody(
            encrypted=False,
            compressed=False,
            utc_date_time=json_utc_timestamp(),
            data=_random_body(),
        ),
    )
    data = json.dumps(wrapped.to_dict(), separators=(",", ":")).encode("utf-8")
    return Letter(
        letter_id=wrapped.letter_id, retry_count=0, body=data, envelope=envelope
    )