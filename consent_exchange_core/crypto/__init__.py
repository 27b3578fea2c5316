"""Key custody and envelope encryption."""

from .envelope import EnvelopeKeyManager, SealedPayload, b64decode, b64encode
from .key_custodian import KeyCustodian, load_public_key

__all__ = [
    "EnvelopeKeyManager",
    "KeyCustodian",
    "SealedPayload",
    "b64decode",
    "b64encode",
    "load_public_key",
]
