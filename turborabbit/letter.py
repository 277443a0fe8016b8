"""Letters, their envelopes, and wrapped bodies describing payload modifications."""

from __future__ import annotations

import base64
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Envelope:
    """Addressing and properties for publishing a letter."""

    exchange: str = ""
    routing_key: str = ""
    content_type: str = ""
    correlation_id: str = ""
    type: str = ""
    mandatory: bool = False
    immediate: bool = False
    headers: dict[str, Any] | None = None
    delivery_mode: int = 0
    priority: int = 0


@dataclass
class Letter:
    """A message body together with where it is going."""

    letter_id: uuid.UUID = field(default_factory=uuid.uuid4)
    retry_count: int = 0
    body: bytes = b""
    envelope: Envelope = field(default_factory=Envelope)


@dataclass
class ModdedBody:
    """A payload with flags telling how it was modified."""

    encrypted: bool = False
    e_type: str = ""
    compressed: bool = False
    c_type: str = ""
    utc_date_time: str = ""
    data: bytes | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"Encrypted": self.encrypted}
        if self.e_type:
            result["EncryptionType"] = self.e_type
        result["Compressed"] = self.compressed
        if self.c_type:
            result["CompressionType"] = self.c_type
        result["UTCDateTime"] = self.utc_date_time
        result["Data"] = (
            None if self.data is None else base64.b64encode(self.data).decode("ascii")
        )
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModdedBody:
        raw = data.get("Data")
        if raw is None:
            payload = None
        elif isinstance(raw, str):
            payload = base64.b64decode(raw, validate=True)
        else:
            raise TypeError("'Data' must be a base64 string")
        return cls(
            encrypted=bool(data.get("Encrypted") or False),
            e_type=data.get("EncryptionType") or "",
            compressed=bool(data.get("Compressed") or False),
            c_type=data.get("CompressionType") or "",
            utc_date_time=data.get("UTCDateTime") or "",
            data=payload,
        )


@dataclass
class WrappedBody:
    """A plaintext wrapper around a modified body, with its letter id and metadata."""

    letter_id: uuid.UUID = field(default_factory=lambda: uuid.UUID(int=0))
    body: ModdedBody | None = None
    letter_metadata: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "LetterID": str(self.letter_id),
            "Body": None if self.body is None else self.body.to_dict(),
            "LetterMetadata": self.letter_metadata,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WrappedBody:
        raw_id = data.get("LetterID")
        letter_id = uuid.UUID(int=0) if raw_id is None else uuid.UUID(raw_id)
        raw_body = data.get("Body")
        if raw_body is not None and not isinstance(raw_body, Mapping):
            raise TypeError("'Body' must be a mapping")
        return cls(
            letter_id=letter_id,
            body=None if raw_body is None else ModdedBody.from_dict(raw_body),
            letter_metadata=data.get("LetterMetadata") or "",
        )