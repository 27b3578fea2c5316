"""
Envelope encryption for data item payloads.

Each payload is sealed with a fresh AES-256-GCM key. The ciphertext is stored
as ``nonce || ciphertext || tag`` and the data key is wrapped under the system
key. At approval time the data key is unwrapped and re-wrapped for the
seeker's public key, so seekers never see the system key.
"""

import base64
import binascii
import os
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel

from ..config import SecurityConfig, get_config
from ..constants import AES_KEY_SIZE, GCM_NONCE_SIZE, GCM_TAG_SIZE
from ..exceptions import CryptoError
from .key_custodian import KeyCustodian, PublicKeyInput, oaep_padding


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(data: Union[str, bytes], field: str = "value") -> bytes:
    """Strict base64 decode; CryptoError on malformed input."""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"Stored {field} is not valid base64", cause=e, field=field)


class SealedPayload(BaseModel):
    """Result of sealing a plaintext: AES-GCM ciphertext plus the system-wrapped data key."""

    ciphertext: bytes
    wrapped_key: bytes

    @property
    def ciphertext_b64(self) -> str:
        return b64encode(self.ciphertext)

    @property
    def wrapped_key_b64(self) -> str:
        return b64encode(self.wrapped_key)


class EnvelopeKeyManager:
    def __init__(self, custodian: KeyCustodian, key_size: int = AES_KEY_SIZE):
        self.custodian = custodian
        self.key_size = key_size

    @classmethod
    def from_config(
        cls, custodian: KeyCustodian, security: Optional[SecurityConfig] = None
    ) -> "EnvelopeKeyManager":
        """Build the manager with the configured data key size."""
        security = security or get_config().security
        return cls(custodian, key_size=security.aes_key_size)

    def generate_data_key(self) -> bytes:
        return AESGCM.generate_key(bit_length=self.key_size * 8)

    def seal(self, plaintext: Union[str, bytes], symmetric_key: bytes) -> bytes:
        """Encrypt with a random 96-bit nonce and prepend it to the output."""
        data = plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext
        nonce = os.urandom(GCM_NONCE_SIZE)
        return nonce + AESGCM(symmetric_key).encrypt(nonce, data, None)

    def store(self, plaintext: Union[str, bytes]) -> SealedPayload:
        symmetric_key = self.generate_data_key()
        return SealedPayload(
            ciphertext=self.seal(plaintext, symmetric_key),
            wrapped_key=self.custodian.wrap(symmetric_key),
        )

    def open(self, ciphertext: bytes, symmetric_key: bytes) -> bytes:
        """
        Decrypt ``nonce || ciphertext || tag``.

        Raises:
            CryptoError: If the blob is truncated, the key is wrong or the tag does not match
        """
        if len(ciphertext) < GCM_NONCE_SIZE + GCM_TAG_SIZE:
            raise CryptoError("Ciphertext is too short to contain a nonce and tag")
        nonce, body = ciphertext[:GCM_NONCE_SIZE], ciphertext[GCM_NONCE_SIZE:]
        try:
            return AESGCM(symmetric_key).decrypt(nonce, body, None)
        except InvalidTag as e:
            raise CryptoError("Payload failed authentication", cause=e)
        except ValueError as e:
            raise CryptoError("Payload could not be decrypted", cause=e)

    def re_encrypt_for_recipient(
        self, wrapped_key: Optional[bytes], recipient_public_key: PublicKeyInput
    ) -> Optional[bytes]:
        """
        Move a data key from the system key to a recipient's public key.

        Returns None when the item was stored without a wrapped key.
        """
        if not wrapped_key:
            return None
        symmetric_key = self.custodian.unwrap(wrapped_key)
        return self.custodian.wrap_for(symmetric_key, recipient_public_key)

    @staticmethod
    def unwrap_with(wrapped_key: bytes, private_key: RSAPrivateKey) -> bytes:
        """Recover a data key with the recipient's own private key."""
        try:
            return private_key.decrypt(wrapped_key, oaep_padding())
        except ValueError as e:
            raise CryptoError("Wrapped key could not be unwrapped with the recipient key", cause=e)
