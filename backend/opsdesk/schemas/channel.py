from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from opsdesk.models.enums import ChannelStatus, ChannelType


class ChannelCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    type: ChannelType = ChannelType.SHOPIFY
    store_url: str = ""
    api_key: str = ""
    api_secret: str = ""
    sync_frequency: int = Field(default=15, ge=1, le=1440)


class ChannelUpdate(BaseModel):
    sync_enabled: bool | None = None
    status: ChannelStatus | None = None
    sync_frequency: int | None = Field(default=None, ge=1, le=1440)


class ChannelOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: ChannelType
    status: ChannelStatus
    store_url: str
    sync_enabled: bool
    sync_frequency: int
    last_sync_at: datetime | None
    created_at: datetime
