from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CustomerCreate(BaseModel):
    contact_name: str = Field(min_length=1, max_length=120)
    company_name: str = Field(default="", max_length=160)
    email: EmailStr
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""
    tax_id: str = ""
    currency_code: str = Field(default="USD", min_length=3, max_length=3)
    payment_terms: int = Field(default=30, ge=0, le=365)
    preferred_language: str = Field(default="en", max_length=8)
    portal_access: bool = False


class CustomerUpdate(BaseModel):
    contact_name: str | None = Field(default=None, min_length=1, max_length=120)
    company_name: str | None = Field(default=None, max_length=160)
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    tax_id: str | None = None
    currency_code: str | None = Field(default=None, min_length=3, max_length=3)
    payment_terms: int | None = Field(default=None, ge=0, le=365)
    preferred_language: str | None = Field(default=None, max_length=8)
    portal_access: bool | None = None


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    contact_name: str
    company_name: str
    display_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    country: str
    postal_code: str
    tax_id: str
    currency_code: str
    payment_terms: int
    preferred_language: str
    portal_access: bool
    created_at: datetime
