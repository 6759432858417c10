from datetime import datetime

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.core.db import Base, UTCDateTime, enum_column, utcnow
from opsdesk.models.enums import ChannelStatus, ChannelType


class Channel(Base):
    __tablename__ = "channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    type: Mapped[ChannelType] = mapped_column(enum_column(ChannelType))
    status: Mapped[ChannelStatus] = mapped_column(enum_column(ChannelStatus), default=ChannelStatus.ACTIVE)
    store_url: Mapped[str] = mapped_column(String(255), default="")
    sync_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    sync_frequency: Mapped[int] = mapped_column(Integer, default=15)  # minutes
    last_sync_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    credentials: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
