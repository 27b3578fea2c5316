"""
Pydantic schemas for provider data items.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..enums import ItemType
from ..exceptions import ErrorCode, ValidationError


class DataItemCreate(BaseModel):
    """
    Schema for publishing a data item.

    Text items carry their ``content``; file items carry a storage
    ``location`` and usually a ``file_name``.
    """

    item_type: ItemType
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    content: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=1000)
    file_name: Optional[str] = Field(default=None, max_length=255)
    encrypt: bool = True

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def validate_payload(self) -> "DataItemCreate":
        if self.item_type == ItemType.TEXT and not self.content:
            raise ValidationError(
                "Text items require content",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="content",
            )
        if self.item_type == ItemType.FILE and not self.location:
            raise ValidationError(
                "File items require a storage location",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="location",
            )
        return self


class DataItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)

    model_config = ConfigDict(extra="ignore")


class DataItemRead(BaseModel):
    """Data item metadata; the payload itself is only released through the access gate."""

    id: str
    provider_id: str
    item_type: ItemType
    name: str
    description: Optional[str] = None
    file_name: Optional[str] = None
    is_active: bool
    is_encrypted: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(cls, item) -> "DataItemRead":
        return cls.model_validate(item).model_copy(
            update={"is_encrypted": item.wrapped_key is not None}
        )
