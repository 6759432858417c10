from datetime import date, datetime

from sqlalchemy import Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opsdesk.core.db import Base, UTCDateTime, enum_column, utcnow
from opsdesk.models.enums import Carrier, PickupSlot


class ReversePickup(Base):
    __tablename__ = "reverse_pickups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # one pickup per return
    return_id: Mapped[int] = mapped_column(ForeignKey("returns.id"), unique=True, index=True)
    return_request = relationship("ReturnRequest", back_populates="pickup")

    carrier: Mapped[Carrier] = mapped_column(enum_column(Carrier))
    pickup_date: Mapped[date] = mapped_column(Date)
    pickup_time_slot: Mapped[PickupSlot] = mapped_column(enum_column(PickupSlot))
    pickup_address: Mapped[str] = mapped_column(String(255))
    contact_name: Mapped[str] = mapped_column(String(120))
    contact_phone: Mapped[str] = mapped_column(String(40))
    pickup_instructions: Mapped[str] = mapped_column(Text, default="")

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
