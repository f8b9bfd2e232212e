# app/models.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime


class ExtractedFields(BaseModel):
    # Empty string / zero means "not provided"
    date: str = ""
    store: str = ""
    items: str = ""
    total_amount: int = 0

    @field_validator("date", "store", "items", mode="before")
    @classmethod
    def _null_text(cls, value):
        return "" if value is None else value

    @field_validator("total_amount", mode="before")
    @classmethod
    def _null_amount(cls, value):
        return 0 if value is None else value


class ReceiptRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    store: str = ""
    items: str = ""
    total_amount: int = 0
    payer: str
    payment_method: str
    image_url: str

    # --- Assigned by the repository on save ---
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReceiptOut(BaseModel):
    """API representation of a stored receipt."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    date: str
    store: str
    items: str
    total_amount: int = Field(serialization_alias="totalAmount")
    payer: str
    payment_method: str = Field(serialization_alias="paymentMethod")
    image_url: str = Field(serialization_alias="imageUrl")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    @classmethod
    def from_record(cls, record: ReceiptRecord) -> "ReceiptOut":
        return cls.model_validate(record.model_dump())


class HealthResponse(BaseModel):
    status: str
    checks: dict[str, str] = {}
