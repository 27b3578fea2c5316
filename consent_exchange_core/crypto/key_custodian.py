"""
System RSA keypair custody.

A KeyCustodian holds one RSA private key and is passed explicitly to the
components that need it. Every DataItem's symmetric key is wrapped under this
key, so whoever holds the custodian can open every item.
"""

import base64
import binascii
from typing import Optional, Union

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey,
    RSAPublicKey,
    generate_private_key,
)

from ..config import SecurityConfig
from ..constants import RSA_KEY_SIZE
from ..exceptions import CryptoError
from ..utils.logger import get_logger

PublicKeyInput = Union[str, bytes, RSAPublicKey]


def oaep_padding() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def load_public_key(public_key: PublicKeyInput) -> RSAPublicKey:
    """
    Import a recipient public key.

    Accepts an RSAPublicKey, PEM text or bytes, or base64-encoded DER
    (SubjectPublicKeyInfo) as produced by most client keystores.

    Raises:
        CryptoError: If the value is empty, unparseable or not an RSA key
    """
    if isinstance(public_key, RSAPublicKey):
        return public_key
    if public_key is None or (isinstance(public_key, (str, bytes)) and not public_key.strip()):
        raise CryptoError("Recipient public key is missing")

    raw = public_key.encode("utf-8") if isinstance(public_key, str) else public_key
    raw = raw.strip()

    try:
        if raw.startswith(b"-----BEGIN"):
            key = serialization.load_pem_public_key(raw)
        else:
            key = serialization.load_der_public_key(base64.b64decode(raw, validate=True))
    except (ValueError, TypeError, binascii.Error) as e:
        raise CryptoError("Recipient public key could not be parsed", cause=e)

    if not isinstance(key, RSAPublicKey):
        raise CryptoError(
            f"Recipient key is not an RSA public key but of type {type(key).__name__}"
        )
    return key


class KeyCustodian:
    """Holds the system keypair and wraps/unwraps symmetric keys with RSA-OAEP(SHA-256)."""

    def __init__(self, private_key: RSAPrivateKey):
        self._private_key = private_key
        self._public_key = private_key.public_key()

    @classmethod
    def generate(cls, key_size: int = RSA_KEY_SIZE) -> "KeyCustodian":
        get_logger().info("Generating system RSA keypair", extra={"key_size": key_size})
        return cls(generate_private_key(public_exponent=65537, key_size=key_size))

    @classmethod
    def from_pem(
        cls, private_pem: Union[str, bytes], password: Optional[str] = None
    ) -> "KeyCustodian":
        """Load the system key from PEM; CryptoError if it is unreadable or not RSA."""
        data = private_pem.encode("utf-8") if isinstance(private_pem, str) else private_pem
        secret = password.encode("utf-8") if password else None
        try:
            key = serialization.load_pem_private_key(data, password=secret)
        except (ValueError, TypeError) as e:
            raise CryptoError("System private key could not be loaded", cause=e)
        if not isinstance(key, RSAPrivateKey):
            raise CryptoError(
                f"System key is not an RSA private key but of type {type(key).__name__}"
            )
        return cls(key)

    @classmethod
    def from_config(cls, security: SecurityConfig) -> "KeyCustodian":
        """
        Build the custodian from configuration.

        Loads the PEM at ``security.system_key_path`` when set; otherwise a
        fresh keypair is generated, which only suits development since items
        stored under it become unreadable after a restart.
        """
        if security.system_key_path:
            try:
                with open(security.system_key_path, "rb") as pem_file:
                    pem = pem_file.read()
            except OSError as e:
                raise CryptoError(
                    "System private key file could not be read",
                    cause=e,
                    path=security.system_key_path,
                )
            return cls.from_pem(pem, security.system_key_password)

        get_logger().warning("No system key path configured; generating an ephemeral keypair")
        return cls.generate(security.rsa_key_size)

    @property
    def public_key(self) -> RSAPublicKey:
        return self._public_key

    @property
    def public_key_pem(self) -> str:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")

    def export_private_key(self, password: Optional[str] = None) -> bytes:
        """PKCS8 PEM of the system key, encrypted when a password is given."""
        if password:
            encryption = serialization.BestAvailableEncryption(password.encode("utf-8"))
        else:
            encryption = serialization.NoEncryption()
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption,
        )

    def wrap(self, symmetric_key: bytes) -> bytes:
        return self._public_key.encrypt(symmetric_key, oaep_padding())

    def unwrap(self, wrapped: bytes) -> bytes:
        try:
            return self._private_key.decrypt(wrapped, oaep_padding())
        except ValueError as e:
            raise CryptoError("Wrapped key could not be unwrapped with the system key", cause=e)

    def wrap_for(self, symmetric_key: bytes, recipient_public_key: PublicKeyInput) -> bytes:
        """Wrap a symmetric key for an external recipient."""
        key = load_public_key(recipient_public_key)
        try:
            return key.encrypt(symmetric_key, oaep_padding())
        except ValueError as e:
            raise CryptoError("Symmetric key could not be wrapped for recipient", cause=e)
