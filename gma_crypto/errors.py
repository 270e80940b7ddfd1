"""
Exception types raised by the GMA client crypto module.

A wrong shared secret on decrypt is not an error: it is reported as ``None``
(or ``DecryptStatus.AUTHENTICATION_FAILED``) so callers can check for it cheaply.
"""


class GmaCryptoError(Exception):
    """Base exception for all errors raised by this package"""
    pass


class ConfigurationError(GmaCryptoError):
    """Invalid construction input, such as an empty base URL"""
    pass


class TransportError(GmaCryptoError):
    """Network or parse failure while fetching the prime or a public key"""
    pass


class CryptoError(GmaCryptoError):
    """Malformed cryptographic input (bad modulus, key or ciphertext)"""
    pass
