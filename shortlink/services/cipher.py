"""AES-CTR encryption of destination URLs.

Every ciphertext is laid out as ``IV || ciphertext`` where the IV is one AES
block drawn from a secure random source. CTR turns AES into a stream cipher,
so the same key must never see the same IV twice.
"""
import binascii
import logging
import os
from typing import Callable, Union

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from shortlink.core.exceptions import DecryptionError, EncryptionError

logger = logging.getLogger(__name__)

BLOCK_SIZE = algorithms.AES.block_size // 8


class CipherService:

    def __init__(self, key: Union[bytes, str], random_bytes: Callable[[int], bytes] = os.urandom):
        self._key = key.encode("utf-8") if isinstance(key, str) else bytes(key)
        self._random_bytes = random_bytes

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CTR(iv))

    def encrypt(self, plaintext: str) -> bytes:
        try:
            iv = self._random_bytes(BLOCK_SIZE)
        except Exception as e:
            logger.error("IV generation error: %s", e)
            raise EncryptionError("Failed to generate initialization vector") from e
        if not isinstance(iv, (bytes, bytearray)) or len(iv) != BLOCK_SIZE:
            raise EncryptionError("Random source returned an invalid initialization vector")

        try:
            encryptor = self._cipher(bytes(iv)).encryptor()
        except ValueError as e:
            # message from cryptography names the key size, never the key
            logger.error("Encryption error: %s", e)
            raise EncryptionError("Invalid encryption key") from e

        return bytes(iv) + encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()

    def encrypt_hex(self, plaintext: str) -> str:
        return self.encrypt(plaintext).hex()

    def decrypt(self, blob: Union[bytes, str]) -> str:
        """Reverse :meth:`encrypt`. A ``str`` blob is read as hex."""
        if isinstance(blob, str):
            try:
                blob = binascii.unhexlify(blob)
            except (binascii.Error, ValueError) as e:
                logger.error("Hex decode error: %s", e)
                raise DecryptionError("Encrypted payload is not valid hex") from e

        if len(blob) < BLOCK_SIZE:
            logger.error("Cipher text is too short")
            raise DecryptionError("Encrypted payload is shorter than one block")

        iv, cipher_text = bytes(blob[:BLOCK_SIZE]), bytes(blob[BLOCK_SIZE:])
        try:
            decryptor = self._cipher(iv).decryptor()
        except ValueError as e:
            logger.error("Decryption error: %s", e)
            raise DecryptionError("Invalid encryption key") from e

        plain = decryptor.update(cipher_text) + decryptor.finalize()
        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted payload is not valid UTF-8") from e
