"""
Client-side cryptographic module for GMA messaging.

Implements:
- Password-derived Diffie-Hellman key pairs over a server-provided prime
- Shared-secret computation against another user's public key
- AES-256-CBC message encryption in the legacy base64 envelope
"""

from .errors import (
    GmaCryptoError,
    ConfigurationError,
    TransportError,
    CryptoError
)
from .primitives import (
    encrypt_message,
    decrypt_message,
    open_message,
    DecryptResult,
    DecryptStatus
)
from .key_agreement import (
    KeyPair,
    KeyDerivation,
    ConcatenationKeyDerivation,
    PBKDF2KeyDerivation,
    derive_key_pair,
    compute_secret
)
from .modulus import ModulusCache, ModulusState
from .transport import ServerTransport
from .client import GmaCrypto

__all__ = [
    'GmaCrypto',
    'GmaCryptoError',
    'ConfigurationError',
    'TransportError',
    'CryptoError',
    'encrypt_message',
    'decrypt_message',
    'open_message',
    'DecryptResult',
    'DecryptStatus',
    'KeyPair',
    'KeyDerivation',
    'ConcatenationKeyDerivation',
    'PBKDF2KeyDerivation',
    'derive_key_pair',
    'compute_secret',
    'ModulusCache',
    'ModulusState',
    'ServerTransport'
]
