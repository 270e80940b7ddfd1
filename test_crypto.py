#!/usr/bin/env python3
"""
Tests for the message cipher and the password-derived key agreement.
Run: pytest, or python test_crypto.py
"""

import base64
import hashlib
import sys
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from gma_crypto.errors import CryptoError
from gma_crypto.primitives import (
    RFC3526_MODP_2048,
    evp_bytes_to_key,
    encrypt_message,
    decrypt_message,
    open_message,
    int_to_bytes,
    DecryptStatus
)
from gma_crypto.key_agreement import (
    derive_key_pair,
    compute_secret,
    ConcatenationKeyDerivation,
    PBKDF2KeyDerivation
)

MODP = int_to_bytes(RFC3526_MODP_2048)
SMALL_SAFE_PRIME = bytes([23])  # 23 = 2 * 11 + 1

SECRET_K = b"k" * 32
SECRET_J = b"j" * 32
# printf hello | openssl enc -aes-256-cbc -md md5 -nosalt -pass pass:<32 x "k"> -a
HELLO_UNDER_K = "vXLbrznykXZkodLIhzvJIQ=="


def test_evp_bytes_to_key():
    """Test the legacy MD5 key derivation"""
    print("Testing EVP_BytesToKey...")

    key, iv = evp_bytes_to_key(b"password")

    assert len(key) == 32, "Wrong key length"
    assert len(iv) == 16, "Wrong IV length"
    assert key[:16] == bytes.fromhex("5f4dcc3b5aa765d61d8327deb882cf99"), "First block should be MD5(password)"

    second = hashlib.md5(key[:16] + b"password").digest()
    assert key[16:] == second, "Second block should chain the first"
    assert iv == hashlib.md5(second + b"password").digest(), "IV should chain the second block"

    print("✓ EVP_BytesToKey works")


def test_legacy_envelope():
    """Test that ciphertext matches the legacy cipher-with-password format"""
    print("Testing legacy envelope...")

    assert encrypt_message("hello", SECRET_K) == HELLO_UNDER_K, "Envelope differs from legacy format"
    assert decrypt_message(HELLO_UNDER_K, SECRET_K) == "hello", "Cannot read legacy envelope"

    # Same result with an independently built AES-256-CBC cipher
    key, iv = evp_bytes_to_key(SECRET_K)
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(base64.b64decode(HELLO_UNDER_K)) + decryptor.finalize()
    unpadder = padding.PKCS7(128).unpadder()
    assert unpadder.update(padded) + unpadder.finalize() == b"hello"

    print("✓ Legacy envelope matches")


def test_encryption_roundtrip():
    """Test encrypt/decrypt with the same secret"""
    print("Testing encryption round trip...")

    for message in ["", "hello", "Grüße, 世界 🎉", "x" * 16, "y" * 1000]:
        ciphertext = encrypt_message(message, SECRET_K)
        assert ciphertext != message, "Ciphertext equals plaintext"
        assert decrypt_message(ciphertext, SECRET_K) == message, f"Round trip failed for {message!r}"

    print("✓ Encryption round trip works")


def test_encryption_is_deterministic():
    """The IV comes from the secret, so equal inputs give equal ciphertext"""
    assert encrypt_message("same", SECRET_K) == encrypt_message("same", SECRET_K)
    assert encrypt_message("same", SECRET_K) != encrypt_message("same", SECRET_J)


def test_wrong_secret_returns_none():
    """Test that a wrong secret is reported as None, not an exception"""
    print("Testing wrong secret...")

    assert decrypt_message(HELLO_UNDER_K, SECRET_J) is None, "Wrong secret should give None"

    result = open_message(HELLO_UNDER_K, SECRET_J)
    assert result.status is DecryptStatus.AUTHENTICATION_FAILED
    assert not result.ok
    assert result.plaintext is None and result.error is None

    print("✓ Wrong secret detected")


def test_malformed_ciphertext_raises():
    """Test that structurally invalid input is an error, not None"""
    print("Testing malformed ciphertext...")

    for bad in ["not-base64!!", "", base64.b64encode(b"0123456789").decode()]:
        try:
            decrypt_message(bad, SECRET_K)
            assert False, f"Should have raised CryptoError for {bad!r}"
        except CryptoError:
            pass  # Expected

        result = open_message(bad, SECRET_K)
        assert result.status is DecryptStatus.MALFORMED
        assert isinstance(result.error, CryptoError)

    print("✓ Malformed ciphertext rejected")


def test_empty_secret_rejected():
    for call in (lambda: encrypt_message("hello", b""), lambda: decrypt_message(HELLO_UNDER_K, b"")):
        try:
            call()
            assert False, "Should have raised CryptoError"
        except CryptoError:
            pass


def test_open_message_ok():
    result = open_message(HELLO_UNDER_K, SECRET_K)
    assert result.ok
    assert result.status is DecryptStatus.OK
    assert result.plaintext == "hello"


def test_derive_key_pair():
    """Test deterministic key pair derivation"""
    print("Testing key pair derivation...")

    pair = derive_key_pair("alice", "secret1", MODP)
    again = derive_key_pair("alice", "secret1", MODP)

    assert pair == again, "Derivation is not deterministic"
    assert pair.private_key == b"alicesecret1", "Private key should be the raw credentials"

    expected_public = pow(2, int.from_bytes(b"alicesecret1", "big"), RFC3526_MODP_2048)
    assert pair.public_key == int_to_bytes(expected_public), "Wrong public key"
    assert derive_key_pair("alice", "secret2", MODP) != pair, "Different password, same pair"

    print("✓ Key pair derivation works")


def test_derive_strips_leading_zero_bytes():
    """The private key is returned in minimal big-endian form"""
    pair = derive_key_pair("\x00a", "b", MODP)
    assert pair.private_key == b"ab"


def test_derive_rejects_bad_input():
    """Test derivation failures"""
    bad_calls = [
        lambda: derive_key_pair("", "", MODP),
        lambda: derive_key_pair("\x00", "", MODP),
        lambda: derive_key_pair("alice", "secret1", b""),
        lambda: derive_key_pair("alice", "secret1", bytes([16])),
        lambda: derive_key_pair("alice", "secret1", bytes([3])),
    ]
    for call in bad_calls:
        try:
            call()
            assert False, "Should have raised CryptoError"
        except CryptoError:
            pass


def test_dh_commutativity():
    """Test that both parties compute the same secret"""
    print("Testing DH agreement...")

    alice = derive_key_pair("alice", "secret1", MODP)
    bob = derive_key_pair("bob", "secret2", MODP)

    alice_shared = compute_secret(alice.private_key, MODP, bob.public_key)
    bob_shared = compute_secret(bob.private_key, MODP, alice.public_key)

    assert alice_shared == bob_shared, "DH agreement failed"
    assert len(alice_shared) == 256, "Secret should be padded to the prime length"

    expected = pow(int.from_bytes(bob.public_key, "big"), int.from_bytes(b"alicesecret1", "big"), RFC3526_MODP_2048)
    assert alice_shared == int_to_bytes(expected, 256)

    print("✓ DH agreement works")


def test_remote_key_range_check():
    """Keys outside [2, p - 2] are rejected"""
    private_key = derive_key_pair("alice", "secret1", SMALL_SAFE_PRIME).private_key

    for remote in [b"", bytes([0]), bytes([1]), bytes([22]), bytes([23]), bytes([200])]:
        try:
            compute_secret(private_key, SMALL_SAFE_PRIME, remote)
            assert False, f"Should have rejected {remote!r}"
        except CryptoError:
            pass

    try:
        compute_secret(b"", SMALL_SAFE_PRIME, bytes([4]))
        assert False, "Should have rejected empty private key"
    except CryptoError:
        pass


def test_subgroup_validation_is_opt_in():
    """
    5 is a quadratic non-residue mod 23, so it lies outside the order-11
    subgroup. It is accepted by default and rejected when validation is on.
    """
    print("Testing subgroup validation...")

    private_key = derive_key_pair("alice", "secret1", SMALL_SAFE_PRIME).private_key
    exponent = int.from_bytes(private_key, "big")

    secret = compute_secret(private_key, SMALL_SAFE_PRIME, bytes([5]))
    assert secret == bytes([pow(5, exponent, 23)]), "Unvalidated key should be used as-is"

    try:
        compute_secret(private_key, SMALL_SAFE_PRIME, bytes([5]), validate_subgroup=True)
        assert False, "Should have rejected key outside the subgroup"
    except CryptoError:
        pass

    # 4 = 2^2 is in the subgroup
    secret = compute_secret(private_key, SMALL_SAFE_PRIME, bytes([4]), validate_subgroup=True)
    assert secret == bytes([pow(4, exponent, 23)])

    print("✓ Subgroup validation works")


def test_pbkdf2_key_derivation():
    """Test the opt-in stretched derivation"""
    stretched = PBKDF2KeyDerivation(iterations=1000)

    first = derive_key_pair("alice", "secret1", MODP, stretched)
    second = derive_key_pair("alice", "secret1", MODP, stretched)
    legacy = derive_key_pair("alice", "secret1", MODP, ConcatenationKeyDerivation())

    assert first == second, "PBKDF2 derivation is not deterministic"
    assert first != legacy, "PBKDF2 keys should differ from legacy keys"
    assert derive_key_pair("bob", "secret1", MODP, stretched) != first, "Username should salt the key"

    other = derive_key_pair("bob", "secret2", MODP, stretched)
    assert compute_secret(first.private_key, MODP, other.public_key) == \
        compute_secret(other.private_key, MODP, first.public_key)


def run_all_tests():
    """Run all tests"""
    print("\n" + "="*50)
    print("Running Cryptographic Tests")
    print("="*50 + "\n")

    try:
        test_evp_bytes_to_key()
        test_legacy_envelope()
        test_encryption_roundtrip()
        test_encryption_is_deterministic()
        test_wrong_secret_returns_none()
        test_malformed_ciphertext_raises()
        test_empty_secret_rejected()
        test_open_message_ok()
        test_derive_key_pair()
        test_derive_strips_leading_zero_bytes()
        test_derive_rejects_bad_input()
        test_dh_commutativity()
        test_remote_key_range_check()
        test_subgroup_validation_is_opt_in()
        test_pbkdf2_key_derivation()

        print("\n" + "="*50)
        print("✓ All tests passed!")
        print("="*50 + "\n")
        return 0

    except AssertionError as e:
        print(f"\n✗ Test failed: {e}")
        return 1
    except Exception as e:
        print(f"\n✗ Unexpected error: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(run_all_tests())
