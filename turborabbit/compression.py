"""Gzip and Zstandard compression of byte payloads."""

from __future__ import annotations

import gzip
import io

import zstandard


def compress_with_zstd(data: bytes) -> bytes:
    """Compress bytes into a Zstandard frame."""
    return zstandard.ZstdCompressor().compress(data)


def decompress_with_zstd(data: bytes) -> bytes:
    """Decompress Zstandard data, reading across all frames."""
    decompressor = zstandard.ZstdDecompressor()
    with decompressor.stream_reader(io.BytesIO(data), read_across_frames=True) as reader:
        return reader.read()


def compress_with_gzip(data: bytes) -> bytes:
    """Compress bytes into a gzip stream."""
    return gzip.compress(data)


def decompress_with_gzip(data: bytes) -> bytes:
    """Decompress a gzip stream; empty input is an error."""
    if not data:
        raise gzip.BadGzipFile("empty gzip stream")
    return gzip.decompress(data)