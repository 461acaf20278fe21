import itertools

import pytest

from shortlink.core.exceptions import DecryptionError, EncryptionError
from shortlink.services.cipher import BLOCK_SIZE, CipherService


def test_round_trip(cipher, sample_urls):
    for url in sample_urls:
        assert cipher.decrypt(cipher.encrypt(url)) == url


def test_round_trip_non_ascii(cipher):
    url = "https://example.com/ünïcødé/路径"
    assert cipher.decrypt(cipher.encrypt(url)) == url


def test_payload_is_iv_plus_ciphertext(cipher):
    url = "https://example.com"
    blob = cipher.encrypt(url)
    assert len(blob) == BLOCK_SIZE + len(url.encode())
    assert url.encode() not in blob


def test_fresh_iv_per_call(cipher):
    first = cipher.encrypt("https://example.com")
    second = cipher.encrypt("https://example.com")
    assert first[:BLOCK_SIZE] != second[:BLOCK_SIZE]
    assert first != second


def test_iv_comes_from_injected_source():
    counter = itertools.count()

    def random_bytes(n):
        return bytes([next(counter) % 256]) * n

    cipher = CipherService(b"k" * 16, random_bytes=random_bytes)
    assert cipher.encrypt("https://a.io")[:BLOCK_SIZE] == b"\x00" * BLOCK_SIZE
    assert cipher.encrypt("https://a.io")[:BLOCK_SIZE] == b"\x01" * BLOCK_SIZE


@pytest.mark.parametrize("key_length", [16, 24, 32])
def test_supported_key_sizes(key_length):
    cipher = CipherService(b"x" * key_length)
    assert cipher.decrypt(cipher.encrypt("https://example.com")) == "https://example.com"


def test_hex_wire_form(cipher):
    encoded = cipher.encrypt_hex("https://example.com/hex")
    assert cipher.decrypt(encoded) == "https://example.com/hex"


@pytest.mark.parametrize("blob", [b"", b"short", b"\x00" * (BLOCK_SIZE - 1), "00ff"])
def test_blob_shorter_than_block_fails(cipher, blob):
    with pytest.raises(DecryptionError):
        cipher.decrypt(blob)


@pytest.mark.parametrize("blob", ["not-hex", "abc", "zz" * 20])
def test_bad_hex_fails(cipher, blob):
    with pytest.raises(DecryptionError):
        cipher.decrypt(blob)


def test_malformed_key_fails_both_directions():
    cipher = CipherService("too-short")
    with pytest.raises(EncryptionError):
        cipher.encrypt("https://example.com")
    with pytest.raises(DecryptionError):
        cipher.decrypt(b"\x00" * 32)


def test_random_source_failure_is_encryption_error():
    def broken(n):
        raise OSError("no entropy")

    with pytest.raises(EncryptionError):
        CipherService(b"k" * 16, random_bytes=broken).encrypt("https://example.com")


def test_random_source_wrong_size_is_encryption_error():
    with pytest.raises(EncryptionError):
        CipherService(b"k" * 16, random_bytes=lambda n: b"\x00").encrypt("https://example.com")


def test_error_message_does_not_leak_key():
    key = "secret-key-value"
    cipher = CipherService(key + "x")
    with pytest.raises(EncryptionError) as exc_info:
        cipher.encrypt("https://example.com")
    assert key not in str(exc_info.value)
