from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from opsdesk.models.enums import SupplierStatus


class SupplierCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    contact_person: str = ""
    email: EmailStr | None = None
    phone: str = ""
    address: str = ""
    city: str = ""
    country: str = ""
    status: SupplierStatus = SupplierStatus.ACTIVE
    rating: int = Field(default=5, ge=1, le=5)
    products: list[str] = []
    payment_terms: str = ""


class SupplierUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    contact_person: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    status: SupplierStatus | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    products: list[str] | None = None
    payment_terms: str | None = None


class SupplierOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    contact_person: str
    email: str
    phone: str
    address: str
    city: str
    country: str
    status: SupplierStatus
    rating: int
    products: list[str]
    payment_terms: str
    created_at: datetime
