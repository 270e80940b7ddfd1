"""
Cryptographic Primitives for the GMA message envelope

This module holds the byte/integer conversions used by the key agreement and
the symmetric message cipher. Messages are encrypted with AES-256-CBC keyed
through OpenSSL's EVP_BytesToKey (MD5, one round, no salt), which reproduces the
legacy "cipher with password" envelope byte for byte.
"""

import base64
import binascii
import enum
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional, Tuple
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import CryptoError

logger = logging.getLogger(__name__)

GMA_ENCODING = "utf-8"
AES_KEY_SIZE = 32
AES_BLOCK_SIZE = 16
BLOCK_BITS = 128  # PKCS#7 padder works in bits

# 2048-bit MODP Group (RFC 3526, group 14), generator 2
RFC3526_MODP_2048 = int(
    "FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD129024E088A67CC74"
    "020BBEA63B139B22514A08798E3404DDEF9519B3CD3A431B302B0A6DF25F1437"
    "4FE1356D6D51C245E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED"
    "EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE45B3DC2007CB8A163BF05"
    "98DA48361C55D39A69163FA8FD24CF5F83655D23DCA3AD961C62F356208552BB9"
    "ED529077096966D670C354E4ABC9804F1746C08CA18217C32905E462E36CE3B"
    "E39E772C180E86039B2783A2EC07A28FB5C55DF06F4C52C9DE2BCBF695581718"
    "3995497CEA956AE515D2261898FA051015728E5A8AACAA68FFFFFFFFFFFFFFFF", 16
)


def bytes_to_int(data: bytes) -> int:
    """Interpret a byte buffer as a big-endian unsigned integer"""
    return int.from_bytes(data, "big")


def int_to_bytes(value: int, length: Optional[int] = None) -> bytes:
    """
    Encode a non-negative integer as big-endian bytes.

    Args:
        value: Integer to encode
        length: Left-pad to this many bytes; minimal encoding when omitted

    Returns:
        Big-endian byte buffer
    """
    if length is None:
        length = max(1, (value.bit_length() + 7) // 8)
    return value.to_bytes(length, "big")


def evp_bytes_to_key(secret: bytes, key_len: int = AES_KEY_SIZE,
                     iv_len: int = AES_BLOCK_SIZE) -> Tuple[bytes, bytes]:
    """
    OpenSSL EVP_BytesToKey with MD5, a single round and no salt.

    Args:
        secret: Raw secret used as the "password"
        key_len: Length of the derived key
        iv_len: Length of the derived IV

    Returns:
        Tuple of (key, iv)
    """
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        block = hashlib.md5(block + secret).digest()
        derived += block
    return derived[:key_len], derived[key_len:key_len + iv_len]


def _check_secret(secret: bytes) -> None:
    if not isinstance(secret, (bytes, bytearray)) or not secret:
        raise CryptoError("Secret must be a non-empty byte buffer")


class DecryptStatus(enum.Enum):
    OK = "ok"
    AUTHENTICATION_FAILED = "authentication_failed"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class DecryptResult:
    """
    Outcome of opening an encrypted message.

    Attributes:
        status: Which of the three outcomes occurred
        plaintext: Decrypted text when status is OK
        error: The CryptoError when status is MALFORMED
    """
    status: DecryptStatus
    plaintext: Optional[str] = None
    error: Optional[CryptoError] = None

    @property
    def ok(self) -> bool:
        return self.status is DecryptStatus.OK


def encrypt_message(message: str, secret: bytes) -> str:
    """
    Encrypt a message with the shared secret.

    Args:
        message: Text to encrypt
        secret: Shared secret, as returned by compute_secret()

    Returns:
        Base64 string containing the AES-256-CBC ciphertext
    """
    _check_secret(secret)
    key, iv = evp_bytes_to_key(bytes(secret))

    padder = padding.PKCS7(BLOCK_BITS).padder()
    padded = padder.update(message.encode(GMA_ENCODING)) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(ciphertext).decode("ascii")


def open_message(message: str, secret: bytes) -> DecryptResult:
    """
    Decrypt a message and report the outcome without raising.

    A padding failure means the secret is wrong (or the data was tampered
    with) and yields AUTHENTICATION_FAILED. Input that is not a base64 encoding
    of whole AES blocks yields MALFORMED.
    """
    _check_secret(secret)
    try:
        ciphertext = base64.b64decode(message, validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        return DecryptResult(DecryptStatus.MALFORMED, error=CryptoError(f"Invalid base64 ciphertext: {e}"))

    if not ciphertext or len(ciphertext) % AES_BLOCK_SIZE:
        return DecryptResult(
            DecryptStatus.MALFORMED,
            error=CryptoError(f"Ciphertext length {len(ciphertext)} is not a positive multiple of {AES_BLOCK_SIZE}")
        )

    key, iv = evp_bytes_to_key(bytes(secret))
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
    try:
        plaintext = unpadder.update(padded) + unpadder.finalize()
    except ValueError:
        logger.debug("Padding check failed, treating as wrong secret")
        return DecryptResult(DecryptStatus.AUTHENTICATION_FAILED)

    return DecryptResult(DecryptStatus.OK, plaintext=plaintext.decode(GMA_ENCODING, errors="replace"))


def decrypt_message(message: str, secret: bytes) -> Optional[str]:
    """
    Decrypt a message with the shared secret.

    Args:
        message: Base64 ciphertext, as returned by encrypt_message()
        secret: Shared secret, as returned by compute_secret()

    Returns:
        The decrypted text, or None if the secret is wrong

    Raises:
        CryptoError: If the ciphertext is not valid base64 or is truncated
    """
    result = open_message(message, secret)
    if result.status is DecryptStatus.MALFORMED:
        raise result.error
    return result.plaintext
