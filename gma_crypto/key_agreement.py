"""
Password-derived Diffie-Hellman Key Agreement

Key pairs are derived deterministically from a username and password so the
same credentials always regenerate the same identity. The default derivation is
the legacy one: the private key is the raw UTF-8 concatenation of username and
password. Its entropy is exactly that of the password text.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import CryptoError
from .primitives import GMA_ENCODING, bytes_to_int, int_to_bytes

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR = 2


@dataclass(frozen=True)
class KeyPair:
    """
    Diffie-Hellman key pair.

    Attributes:
        public_key: generator^private mod prime, big-endian
        private_key: Private exponent, big-endian
    """
    public_key: bytes
    private_key: bytes


class KeyDerivation(ABC):
    """Turns credentials into private key material"""

    @abstractmethod
    def derive_private_key(self, username: str, password: str) -> bytes:
        """
        Derive the private key bytes for a user.

        Args:
            username: Username
            password: Password

        Returns:
            Private key bytes, interpreted big-endian
        """


class ConcatenationKeyDerivation(KeyDerivation):
    """
    Legacy derivation: UTF-8 bytes of username + password, no separator.

    Weak (no stretching), but required to regenerate keys created by
    existing clients.
    """

    def derive_private_key(self, username: str, password: str) -> bytes:
        material = (username + password).encode(GMA_ENCODING)
        if not material:
            raise CryptoError("Username and password cannot both be empty")
        return material


class PBKDF2KeyDerivation(KeyDerivation):
    """
    PBKDF2-HMAC-SHA256 derivation salted with the username.

    Opt-in only: keys derived this way differ from legacy keys.
    """

    def __init__(self, iterations: int = 100000, length: int = 32):
        self.iterations = iterations
        self.length = length

    def derive_private_key(self, username: str, password: str) -> bytes:
        if not username and not password:
            raise CryptoError("Username and password cannot both be empty")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.length,
            salt=username.encode(GMA_ENCODING),
            iterations=self.iterations,
        )
        return kdf.derive(password.encode(GMA_ENCODING))


def _parse_modulus(modulus: bytes) -> int:
    if not modulus:
        raise CryptoError("Modulus is empty")
    prime = bytes_to_int(modulus)
    if prime <= 3 or prime % 2 == 0:
        raise CryptoError("Modulus is not a usable odd prime")
    return prime


def _parse_private_key(private_key: bytes) -> int:
    if not private_key:
        raise CryptoError("Private key is empty")
    exponent = bytes_to_int(private_key)
    if exponent == 0:
        raise CryptoError("Private key is zero")
    return exponent


def derive_key_pair(username: str, password: str, modulus: bytes,
                    key_derivation: Optional[KeyDerivation] = None) -> KeyPair:
    """
    Derive a deterministic key pair from credentials.

    Args:
        username: Username
        password: Password
        modulus: DH prime, big-endian
        key_derivation: How to turn credentials into a private key
            (defaults to ConcatenationKeyDerivation)

    Returns:
        KeyPair with minimal big-endian encodings of both keys
    """
    prime = _parse_modulus(modulus)
    if key_derivation is None:
        key_derivation = ConcatenationKeyDerivation()

    exponent = _parse_private_key(key_derivation.derive_private_key(username, password))
    public = pow(DEFAULT_GENERATOR, exponent, prime)

    return KeyPair(
        public_key=int_to_bytes(public),
        private_key=int_to_bytes(exponent)
    )


def is_in_prime_order_subgroup(public_key: int, prime: int) -> bool:
    """
    Check membership in the order-(p-1)/2 subgroup of a safe prime.

    This is the subgroup generated by 2 for the RFC 3526 MODP groups.
    """
    return pow(public_key, (prime - 1) // 2, prime) == 1


def compute_secret(private_key: bytes, modulus: bytes, remote_public_key: bytes,
                   validate_subgroup: bool = False) -> bytes:
    """
    Compute the shared secret remote_public^private mod prime.

    Only the range 2 <= remote <= p - 2 is checked unless validate_subgroup is
    set, which additionally rejects keys outside the prime-order subgroup.

    Args:
        private_key: Our private key, as returned by derive_key_pair()
        modulus: DH prime, big-endian
        remote_public_key: The other party's public key, big-endian
        validate_subgroup: Reject keys outside the prime-order subgroup

    Returns:
        Shared secret, left-padded to the byte length of the prime

    Raises:
        CryptoError: If any input is malformed or the key is rejected
    """
    prime = _parse_modulus(modulus)
    exponent = _parse_private_key(private_key)

    if not remote_public_key:
        raise CryptoError("Remote public key is empty")
    remote = bytes_to_int(remote_public_key)
    if remote < 2:
        raise CryptoError("Supplied key is too small")
    if remote > prime - 2:
        raise CryptoError("Supplied key is too large")
    if validate_subgroup and not is_in_prime_order_subgroup(remote, prime):
        logger.warning("Rejected remote public key outside the prime-order subgroup")
        raise CryptoError("Supplied key is not in the prime-order subgroup")

    secret = pow(remote, exponent, prime)
    return int_to_bytes(secret, (prime.bit_length() + 7) // 8)
