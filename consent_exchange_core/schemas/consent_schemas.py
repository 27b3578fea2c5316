"""
Pydantic schemas for consents, consent history and access grants.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..enums import ConsentStatus, HistoryAction, ItemType, Role


class ConsentRead(BaseModel):
    id: str
    data_item_id: str
    seeker_id: str
    provider_id: str
    status: ConsentStatus
    wrapped_key_for_seeker: Optional[str] = None
    requested_at: datetime
    approved_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    access_count: int
    max_access_count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ConsentHistoryRead(BaseModel):
    id: str
    consent_id: str
    action: HistoryAction
    actor_id: Optional[str] = None
    actor_role: Optional[Role] = None
    timestamp: datetime
    details: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AccessGrant(BaseModel):
    """
    What a seeker receives from a successful authorization.

    ``payload`` is the base64 ciphertext for encrypted text items (or the
    stored plaintext when the item was not encrypted). ``wrapped_key_for_seeker``
    unwraps with the seeker's private key.
    """

    consent_id: str
    data_item_id: str
    item_type: ItemType
    display_name: str
    payload: Optional[str] = None
    location: Optional[str] = None
    file_name: Optional[str] = None
    wrapped_key_for_seeker: Optional[str] = None
    access_count: int
    max_access_count: Optional[int] = None
    expires_at: Optional[datetime] = None
