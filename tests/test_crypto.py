import base64

import pytest
from cryptography.exceptions import InvalidTag

from turborabbit.crypto import (
    compare_argon2_hash,
    decrypt_with_aes,
    encrypt_with_aes,
    get_hash_with_argon,
    get_string_hash_with_argon,
)

PASSPHRASE = "password"
OTHER_PASSPHRASE = "secret"
SALT = "SuperSaltySalt"


def test_argon_hash_is_deterministic_with_requested_length():
    first = get_hash_with_argon(PASSPHRASE, SALT, 1, 1, 1, 32)
    second = get_hash_with_argon(PASSPHRASE, SALT, 1, 1, 1, 32)
    assert first == second
    assert len(first) == 32


def test_argon_hash_depends_on_salt_and_passphrase():
    base = get_hash_with_argon(PASSPHRASE, SALT, 1, 1, 1, 32)
    assert get_hash_with_argon(PASSPHRASE, "AnotherSaltValue", 1, 1, 1, 32) != base
    assert get_hash_with_argon(OTHER_PASSPHRASE, SALT, 1, 1, 1, 32) != base


def test_argon_hash_zero_time_and_threads_default_to_one():
    assert get_hash_with_argon(PASSPHRASE, SALT, 0, 1, 0, 16) == get_hash_with_argon(
        PASSPHRASE, SALT, 1, 1, 1, 16
    )


def test_argon_hash_zero_multiplier_still_hashes():
    digest = get_hash_with_argon(PASSPHRASE, SALT, 1, 0, 1, 16)
    assert len(digest) == 16


def test_argon_hash_empty_inputs_give_none():
    assert get_hash_with_argon("", SALT, 1, 1, 1, 32) is None
    assert get_hash_with_argon(PASSPHRASE, "", 1, 1, 1, 32) is None


def test_string_hash_is_base64_of_requested_length():
    encoded = get_string_hash_with_argon(PASSPHRASE, SALT, 1, 1, 32)
    assert len(base64.b64decode(encoded, validate=True)) == 32
    assert get_string_hash_with_argon(PASSPHRASE, SALT, 1, 1, 32) == encoded


def test_string_hash_empty_inputs_give_empty_string():
    assert get_string_hash_with_argon("", SALT, 1, 1, 32) == ""
    assert get_string_hash_with_argon(PASSPHRASE, "", 1, 1, 32) == ""


def test_compare_argon2_hash():
    stored = get_hash_with_argon(PASSPHRASE, SALT, 1, 1, 1, 32)
    assert compare_argon2_hash(PASSPHRASE, SALT, 1, stored) is True
    assert compare_argon2_hash(OTHER_PASSPHRASE, SALT, 1, stored) is False


def test_compare_argon2_hash_empty_passphrase_raises():
    with pytest.raises(ValueError):
        compare_argon2_hash("", SALT, 1, b"\x00" * 32)


KEY = bytes(range(32))
DATA = b"Hello, World! This is a payload."


def test_aes_round_trip():
    encrypted = encrypt_with_aes(DATA, KEY, 12)
    assert decrypt_with_aes(encrypted, KEY, 12) == DATA


def test_aes_output_is_nonce_plus_ciphertext_plus_tag():
    assert len(encrypt_with_aes(DATA, KEY, 12)) == 12 + len(DATA) + 16
    assert len(encrypt_with_aes(DATA, KEY, 24)) == 24 + len(DATA) + 16


def test_aes_nonce_size_out_of_range_falls_back_to_twelve():
    encrypted = encrypt_with_aes(DATA, KEY, 5)
    assert len(encrypted) == 12 + len(DATA) + 16
    assert decrypt_with_aes(encrypted, KEY, 12) == DATA


def test_aes_uses_random_nonce():
    first = encrypt_with_aes(DATA, KEY, 12)
    second = encrypt_with_aes(DATA, KEY, 12)
    assert first[:12] != second[:12]
    assert first[12:] != second[12:]
    assert decrypt_with_aes(first, KEY, 12) == DATA
    assert decrypt_with_aes(second, KEY, 12) == DATA


def test_aes_accepts_shorter_keys():
    key = bytes(range(16))
    assert decrypt_with_aes(encrypt_with_aes(DATA, key, 16), key, 16) == DATA


def test_aes_empty_input_raises():
    with pytest.raises(ValueError):
        encrypt_with_aes(b"", KEY, 12)
    with pytest.raises(ValueError):
        encrypt_with_aes(DATA, b"", 12)


def test_aes_bad_key_length_raises():
    with pytest.raises(ValueError):
        encrypt_with_aes(DATA, b"short", 12)


def test_aes_wrong_key_fails_authentication():
    encrypted = encrypt_with_aes(DATA, KEY, 12)
    with pytest.raises(InvalidTag):
        decrypt_with_aes(encrypted, bytes(reversed(KEY)), 12)


def test_aes_tampered_data_fails_authentication():
    encrypted = bytearray(encrypt_with_aes(DATA, KEY, 12))
    encrypted[-1] ^= 0x01
    with pytest.raises(InvalidTag):
        decrypt_with_aes(bytes(encrypted), KEY, 12)


def test_aes_decrypt_too_short_raises():
    with pytest.raises(ValueError):
        decrypt_with_aes(b"\x00" * 12, KEY, 12)
    with pytest.raises(ValueError):
        decrypt_with_aes(b"", KEY, 12)