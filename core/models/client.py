"""Client (invoice recipient) domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr, field_validator


class ClientCreate(BaseModel):
    """Data required to create a client."""

    name: str = Field(..., min_length=1, max_length=255)
    company: str | None = Field(None, max_length=255)
    email: EmailStr
    address: str = Field("", max_length=1000)

    model_config = {"str_strip_whitespace": True}


class ClientUpdate(BaseModel):
    """
    Data that can be updated on a client. All fields optional.

    Only fields that are sent are applied. Sending company as null clears
    it; the other fields can be changed but not cleared.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    company: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    address: str | None = Field(None, max_length=1000)

    model_config = {"str_strip_whitespace": True}

    @field_validator("name", "email", "address")
    @classmethod
    def not_clearable(cls, value):
        if value is None:
            raise ValueError("Field cannot be cleared")
        return value


class ClientSnapshot(BaseModel):
    """
    Copy of a client's contact details taken when an invoice is created.

    Editing the client later never rewrites invoices already issued.
    """

    name: str
    company: str | None = None
    email: str
    address: str = ""

    @property
    def display_name(self) -> str:
        """Company name when present, otherwise the contact name."""
        return self.company or self.name


class Client(BaseModel):
    """Full client entity as stored."""

    id: UUID
    user_id: UUID
    name: str
    company: str | None
    email: str
    address: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}

    def snapshot(self) -> ClientSnapshot:
        return ClientSnapshot(
            name=self.name,
            company=self.company,
            email=self.email,
            address=self.address,
        )
