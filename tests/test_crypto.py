"""Tests for password-based encryption of wallet secrets."""

import pytest

from crossswap.crypto import (
    IV_LENGTH,
    SALT_LENGTH,
    TAG_LENGTH,
    CipherEnvelope,
    DecryptionError,
    EncryptionService,
)


class TestEncryptionService:
    """Tests for EncryptionService."""

    def test_encrypt_decrypt(self):
        """Test that a secret decrypts with the password it was encrypted with."""
        blob = EncryptionService.encrypt("0xdeadbeef", "hunter22")

        assert EncryptionService.decrypt(blob, "hunter22") == "0xdeadbeef"

    def test_envelope_format(self):
        """Test the salt:iv:tag:ciphertext hex layout."""
        blob = EncryptionService.encrypt("secret", "hunter22")
        salt, iv, tag, ciphertext = blob.split(":")

        assert len(bytes.fromhex(salt)) == SALT_LENGTH
        assert len(bytes.fromhex(iv)) == IV_LENGTH
        assert len(bytes.fromhex(tag)) == TAG_LENGTH
        assert len(bytes.fromhex(ciphertext)) == len("secret")

    def test_fresh_salt_and_iv_per_encryption(self):
        """Test that encrypting the same secret twice gives different envelopes."""
        first = EncryptionService.encrypt("same", "hunter22")
        second = EncryptionService.encrypt("same", "hunter22")

        assert first != second

    def test_wrong_password_fails(self):
        """Test that a wrong password is rejected rather than returning garbage."""
        blob = EncryptionService.encrypt("secret", "hunter22")

        with pytest.raises(DecryptionError):
            EncryptionService.decrypt(blob, "hunter23")

    def test_tampered_ciphertext_fails(self):
        """Test that flipping a ciphertext byte fails authentication."""
        envelope = CipherEnvelope.parse(EncryptionService.encrypt("secret", "hunter22"))
        flipped = bytes([envelope.ciphertext[0] ^ 0x01]) + envelope.ciphertext[1:]
        tampered = CipherEnvelope(envelope.salt, envelope.iv, envelope.auth_tag, flipped)

        with pytest.raises(DecryptionError):
            EncryptionService.decrypt(tampered.serialize(), "hunter22")

    @pytest.mark.parametrize(
        "data",
        [
            "not-an-envelope",
            "aa:bb:cc",
            "zz:zz:zz:zz",
            "00:" + "00" * IV_LENGTH + ":" + "00" * TAG_LENGTH + ":00",
        ],
    )
    def test_malformed_envelope(self, data):
        """Test that malformed envelopes raise DecryptionError."""
        with pytest.raises(DecryptionError):
            EncryptionService.decrypt(data, "hunter22")


class TestPasswordHashing:
    """Tests for password hashing."""

    def test_hash_and_verify(self):
        """Test that the right password verifies and a wrong one does not."""
        stored = EncryptionService.hash_password("hunter22")

        assert EncryptionService.verify_password("hunter22", stored)
        assert not EncryptionService.verify_password("hunter2", stored)

    def test_hash_is_salted(self):
        """Test that the same password hashes differently each time."""
        assert EncryptionService.hash_password("hunter22") != EncryptionService.hash_password("hunter22")

    def test_invalid_stored_hash(self):
        """Test that a corrupt stored hash never verifies."""
        assert not EncryptionService.verify_password("hunter22", "no-separator")
