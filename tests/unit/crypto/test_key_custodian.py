"""
Tests for the system keypair custodian and public key import.
"""

import base64
import os

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from consent_exchange_core.config import SecurityConfig
from consent_exchange_core.crypto import KeyCustodian, load_public_key
from consent_exchange_core.crypto.key_custodian import oaep_padding
from consent_exchange_core.exceptions import CryptoError, ErrorCode


class TestWrapUnwrap:
    def test_wrap_then_unwrap_returns_key(self, key_custodian):
        """A wrapped symmetric key unwraps to the same bytes."""
        symmetric_key = os.urandom(32)

        wrapped = key_custodian.wrap(symmetric_key)

        assert wrapped != symmetric_key
        assert key_custodian.unwrap(wrapped) == symmetric_key

    def test_wrapping_is_randomized(self, key_custodian):
        """OAEP padding gives a different ciphertext every time."""
        symmetric_key = os.urandom(32)

        assert key_custodian.wrap(symmetric_key) != key_custodian.wrap(symmetric_key)

    def test_unwrap_with_other_key_fails(self, key_custodian):
        """A key wrapped under another system key cannot be unwrapped."""
        other = KeyCustodian.generate(2048)
        wrapped = other.wrap(os.urandom(32))

        with pytest.raises(CryptoError) as exc_info:
            key_custodian.unwrap(wrapped)

        assert exc_info.value.error_code == ErrorCode.CRYPTO_ERROR

    def test_wrap_for_recipient(self, key_custodian, seeker_private_key, seeker_public_pem):
        """wrap_for encrypts to a recipient who can open it with their private key."""
        symmetric_key = os.urandom(32)

        wrapped = key_custodian.wrap_for(symmetric_key, seeker_public_pem)

        assert seeker_private_key.decrypt(wrapped, oaep_padding()) == symmetric_key


class TestLoadPublicKey:
    def test_accepts_pem_text(self, seeker_public_pem):
        key = load_public_key(seeker_public_pem)
        assert key.key_size == 2048

    def test_accepts_base64_der(self, seeker_private_key):
        """Base64 SubjectPublicKeyInfo, as exported by client keystores, is accepted."""
        der = seeker_private_key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

        key = load_public_key(base64.b64encode(der).decode("ascii"))

        assert key.public_numbers() == seeker_private_key.public_key().public_numbers()

    def test_accepts_key_object(self, seeker_private_key):
        public_key = seeker_private_key.public_key()
        assert load_public_key(public_key) is public_key

    @pytest.mark.parametrize("value", [None, "", "   ", b""])
    def test_missing_key_rejected(self, value):
        with pytest.raises(CryptoError, match="missing"):
            load_public_key(value)

    @pytest.mark.parametrize("value", ["not a key", "-----BEGIN PUBLIC KEY-----\ngarbage\n"])
    def test_unparseable_key_rejected(self, value):
        with pytest.raises(CryptoError, match="could not be parsed"):
            load_public_key(value)

    def test_non_rsa_key_rejected(self):
        """An EC public key is well-formed but cannot wrap with OAEP."""
        ec_pem = (
            ec.generate_private_key(ec.SECP256R1())
            .public_key()
            .public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        )

        with pytest.raises(CryptoError, match="not an RSA public key"):
            load_public_key(ec_pem)


class TestCustodianPersistence:
    def test_export_and_reload_with_password(self, key_custodian):
        """An exported, password-protected key reloads into an equivalent custodian."""
        pem = key_custodian.export_private_key(password="s3cret-pass")
        reloaded = KeyCustodian.from_pem(pem, password="s3cret-pass")

        wrapped = key_custodian.wrap(b"k" * 32)

        assert reloaded.unwrap(wrapped) == b"k" * 32
        assert reloaded.public_key_pem == key_custodian.public_key_pem

    def test_reload_with_wrong_password_fails(self, key_custodian):
        pem = key_custodian.export_private_key(password="right-password")

        with pytest.raises(CryptoError):
            KeyCustodian.from_pem(pem, password="wrong-password")

    def test_from_config_reads_key_file(self, key_custodian, tmp_path):
        key_path = tmp_path / "system_key.pem"
        key_path.write_bytes(key_custodian.export_private_key())

        custodian = KeyCustodian.from_config(SecurityConfig(system_key_path=str(key_path)))

        assert custodian.public_key_pem == key_custodian.public_key_pem

    def test_from_config_missing_file(self, tmp_path):
        security = SecurityConfig(system_key_path=str(tmp_path / "absent.pem"))

        with pytest.raises(CryptoError, match="could not be read"):
            KeyCustodian.from_config(security)

    def test_from_config_without_path_generates(self):
        custodian = KeyCustodian.from_config(SecurityConfig(system_key_path=None, rsa_key_size=2048))

        assert custodian.public_key.key_size == 2048
