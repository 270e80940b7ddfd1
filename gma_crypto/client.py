"""
GmaCrypto: client-side key agreement and message encryption.

Typical use:

    async with GmaCrypto("https://chat.example.com/api") as gma:
        pair = await gma.generate_key_pair("alice", "secret1")
        secret = await gma.compute_shared_secret(pair.private_key, 42)
        token = GmaCrypto.encrypt("hello", secret)
"""

import asyncio
import logging
from typing import Optional

from .errors import ConfigurationError
from .key_agreement import KeyDerivation, KeyPair, compute_secret, derive_key_pair
from .modulus import ModulusCache
from .primitives import DecryptResult, decrypt_message, encrypt_message, open_message
from .transport import ServerTransport

logger = logging.getLogger(__name__)


class GmaCrypto:
    """
    Derives key pairs, computes shared secrets and encrypts messages.

    The prime is fetched from the server once and cached on the instance.
    """

    def __init__(self, base_url: str, transport=None,
                 key_derivation: Optional[KeyDerivation] = None,
                 validate_subgroup: bool = False):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the key server
            transport: Object providing fetch_prime() and resolve(user_id);
                a ServerTransport for base_url is created when omitted
            key_derivation: Credential-to-private-key derivation (legacy
                concatenation when omitted)
            validate_subgroup: Reject remote public keys outside the
                prime-order subgroup

        Raises:
            ConfigurationError: If base_url is empty
        """
        if not base_url:
            raise ConfigurationError("You need to pass the URL to the GmaCrypto constructor.")

        self.base_url = base_url
        self.transport = transport if transport is not None else ServerTransport(base_url)
        self.key_derivation = key_derivation
        self.validate_subgroup = validate_subgroup
        self.modulus = ModulusCache(self.transport)

    async def generate_key_pair(self, username: str, password: str) -> KeyPair:
        """
        Generate the key pair for a user.

        The private key is derived from the credentials, so the same username
        and password always give the same pair. The public key can then be
        uploaded with POST /users.
        """
        prime = await self.modulus.get()
        return derive_key_pair(username, password, prime, self.key_derivation)

    async def compute_shared_secret(self, private_key: bytes, user_id: int) -> bytes:
        """
        Compute the secret shared with another user.

        The prime (if not cached yet) and the other user's public key are
        fetched concurrently.

        Args:
            private_key: Our private key, as returned by generate_key_pair()
            user_id: The other user's ID on the server

        Returns:
            Shared secret bytes
        """
        prime, public_key = await asyncio.gather(
            self.modulus.get(),
            self.transport.resolve(user_id)
        )
        logger.debug("Computing shared secret with user %s", user_id)
        return compute_secret(private_key, prime, public_key, self.validate_subgroup)

    @staticmethod
    def encrypt(message: str, secret: bytes) -> str:
        """Encrypt a message with the shared secret, returning base64"""
        return encrypt_message(message, secret)

    @staticmethod
    def decrypt(message: str, secret: bytes) -> Optional[str]:
        """Decrypt a message, returning None on a wrong secret"""
        return decrypt_message(message, secret)

    @staticmethod
    def open(message: str, secret: bytes) -> DecryptResult:
        """Decrypt a message into a tagged DecryptResult"""
        return open_message(message, secret)

    async def aclose(self):
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "GmaCrypto":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
