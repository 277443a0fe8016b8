"""JSON configuration loading and payload building with optional compression and encryption."""

from __future__ import annotations

import base64
import json
import os
import uuid
from typing import Any

from turborabbit.compression import (
    compress_with_gzip,
    compress_with_zstd,
    decompress_with_gzip,
    decompress_with_zstd,
)
from turborabbit.configs import (
    CompressionConfig,
    EncryptionConfig,
    RabbitSeasoning,
    TopologyConfig,
)
from turborabbit.crypto import decrypt_with_aes, encrypt_with_aes
from turborabbit.letter import ModdedBody, WrappedBody
from turborabbit.utils import json_utc_timestamp

GZIP_COMPRESSION_TYPE = "gzip"
ZSTD_COMPRESSION_TYPE = "zstd"
AES_SYMMETRIC_TYPE = "aes"

_NONCE_SIZE = 12


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, uuid.UUID):
        return str(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def _dumps(value: Any) -> bytes:
    return json.dumps(
        value, separators=(",", ":"), ensure_ascii=False, default=_json_default
    ).encode("utf-8")


def _read_json(path: str | os.PathLike[str]) -> Any:
    with open(path, "rb") as handle:
        return json.loads(handle.read())


def convert_json_file_to_config(file_name_path: str | os.PathLike[str]) -> RabbitSeasoning:
    """Read a JSON file into a RabbitSeasoning."""
    return RabbitSeasoning.from_dict(_read_json(file_name_path))


def convert_json_file_to_topology_config(
    file_name_path: str | os.PathLike[str],
) -> TopologyConfig:
    """Read a JSON file into a TopologyConfig."""
    return TopologyConfig.from_dict(_read_json(file_name_path))


def read_wrapped_body_from_json_bytes(data: bytes | str) -> WrappedBody:
    """Parse JSON bytes into a WrappedBody."""
    parsed = json.loads(data)
    if not isinstance(parsed, dict):
        raise TypeError("wrapped body JSON must be an object")
    return WrappedBody.from_dict(parsed)


def read_json_file_to_interface(file_name_path: str | os.PathLike[str]) -> Any:
    """Read a JSON file into plain Python values."""
    return _read_json(file_name_path)


def _compress(compression: CompressionConfig, data: bytes) -> bytes:
    if compression.type == ZSTD_COMPRESSION_TYPE:
        return compress_with_zstd(data)
    return compress_with_gzip(data)


def _decompress(compression: CompressionConfig, data: bytes) -> bytes:
    if compression.type == ZSTD_COMPRESSION_TYPE:
        return decompress_with_zstd(data)
    return decompress_with_gzip(data)


def _encrypt(encryption: EncryptionConfig, data: bytes) -> bytes:
    return encrypt_with_aes(data, encryption.hashkey or b"", _NONCE_SIZE)


def _decrypt(encryption: EncryptionConfig, data: bytes) -> bytes:
    return decrypt_with_aes(data, encryption.hashkey or b"", _NONCE_SIZE)


def create_payload(
    input_data: Any,
    compression: CompressionConfig | None,
    encryption: EncryptionConfig | None,
) -> bytes:
    """Serialise to JSON, then compress and encrypt as configured."""
    data = _dumps(input_data)
    if compression is not None and compression.enabled:
        data = _compress(compression, data)
    if encryption is not None and encryption.enabled:
        data = _encrypt(encryption, data)
    return data


def create_wrapped_payload(
    input_data: Any,
    letter_id: uuid.UUID,
    metadata: str,
    compression: CompressionConfig | None,
    encryption: EncryptionConfig | None,
) -> bytes:
    """Serialise to JSON, modify as configured, and wrap in a plaintext WrappedBody."""
    body = ModdedBody()
    inner = _dumps(input_data)
    if compression is not None and compression.enabled:
        inner = _compress(compression, inner)
        body.compressed = True
        body.c_type = compression.type
    if encryption is not None and encryption.enabled:
        inner = _encrypt(encryption, inner)
        body.encrypted = True
        body.e_type = encryption.type
    body.utc_date_time = json_utc_timestamp()
    body.data = inner
    wrapped = WrappedBody(letter_id=letter_id, body=body, letter_metadata=metadata)
    return _dumps(wrapped.to_dict())


def read_payload(
    data: bytes,
    compression: CompressionConfig | None,
    encryption: EncryptionConfig | None,
) -> bytes:
    """Decrypt and then decompress a payload as configured."""
    if encryption is not None and encryption.enabled:
        data = _decrypt(encryption, data)
    if compression is not None and compression.enabled:
        data = _decompress(compression, data)
    return data