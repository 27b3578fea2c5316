"""
Data item model.

Just the data structure - no business logic or class methods.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text

from .db_base import TimestampMixin, UUIDMixin
from .db_config import Base


class DataItem(Base, UUIDMixin, TimestampMixin):
    """
    A provider-owned item.

    ``payload`` holds base64 ciphertext (nonce || ciphertext || tag) for
    encrypted text items, or the plaintext when stored unencrypted. File items
    carry their storage pointer in ``location``. ``wrapped_key`` is the data
    key wrapped under the system key, NULL when the item is not encrypted.
    """

    __tablename__ = "data_item"

    provider_id = Column(String(36), ForeignKey("provider.id"), nullable=False)
    item_type = Column(String(10), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=True)
    payload = Column(Text, nullable=True)
    location = Column(String(1000), nullable=True)
    file_name = Column(String(255), nullable=True)
    wrapped_key = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("ix_data_item_provider", "provider_id", "is_active"),)
