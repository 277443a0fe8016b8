"""Argon2id key derivation and AES-GCM payload encryption."""

from __future__ import annotations

import base64
import hmac
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

DEFAULT_NONCE_SIZE = 12


def _argon2id(
    passphrase: str, salt: str, iterations: int, memory_kib: int, lanes: int, length: int
) -> bytes:
    # Argon2 needs at least 8 KiB of memory per lane.
    memory_kib = max(memory_kib, 8 * lanes)
    kdf = Argon2id(
        salt=salt.encode(),
        length=length,
        iterations=iterations,
        lanes=lanes,
        memory_cost=memory_kib,
    )
    return kdf.derive(passphrase.encode())


def get_hash_with_argon(
    passphrase: str,
    salt: str,
    time_consideration: int,
    multiplier: int,
    threads: int,
    hash_length: int,
) -> bytes | None:
    """Hash a passphrase with Argon2id using ``multiplier`` MiB of memory.

    Returns None when the passphrase or salt is empty.
    """
    if not passphrase or not salt:
        return None
    return _argon2id(
        passphrase,
        salt,
        time_consideration or 1,
        multiplier * 1024,
        threads or 1,
        hash_length,
    )


def get_string_hash_with_argon(
    passphrase: str, salt: str, time_consideration: int, threads: int, hash_length: int
) -> str:
    """Hash a passphrase with Argon2id (64 MiB) and return it base64 encoded.

    Returns an empty string when the passphrase or salt is empty.
    """
    if not passphrase or not salt:
        return ""
    digest = _argon2id(
        passphrase, salt, time_consideration or 1, 64 * 1024, threads or 1, hash_length
    )
    return base64.b64encode(digest).decode("ascii")


def compare_argon2_hash(
    passphrase: str, salt: str, multiplier: int, hashed_password: bytes
) -> bool:
    """Hash a passphrase and compare it with a stored hash in constant time."""
    inbound = get_hash_with_argon(passphrase, salt, 1, multiplier, 1, len(hashed_password))
    if inbound is None:
        raise ValueError("hash generated was nil")
    return hmac.compare_digest(inbound, hashed_password)


def encrypt_with_aes(data: bytes, hashed_key: bytes, nonce_size: int) -> bytes:
    """Encrypt with AES-GCM; the random nonce is prepended to the result.

    A nonce size outside 12..32 falls back to 12.
    """
    if not data or not hashed_key:
        raise ValueError("data or hash can't be zero length")
    if nonce_size < 12 or nonce_size > 32:
        nonce_size = DEFAULT_NONCE_SIZE
    cipher = AESGCM(hashed_key)
    nonce = os.urandom(nonce_size)
    return nonce + cipher.encrypt(nonce, data, None)


def decrypt_with_aes(
    cipher_data_with_nonce: bytes, hashed_key: bytes, nonce_size: int
) -> bytes:
    """Decrypt AES-GCM data whose first ``nonce_size`` bytes are the nonce.

    Raises cryptography.exceptions.InvalidTag when authentication fails.
    """
    if (
        not cipher_data_with_nonce
        or not hashed_key
        or len(cipher_data_with_nonce) <= nonce_size
    ):
        raise ValueError(
            "cipherDataWithNonce or hash can't be zero length or cipherDataWithNonce "
            "can't be the same size as nonce"
        )
    cipher = AESGCM(hashed_key)
    nonce = cipher_data_with_nonce[:nonce_size]
    return cipher.decrypt(nonce, cipher_data_with_nonce[nonce_size:], None)