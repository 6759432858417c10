import logging

from fastapi import APIRouter, Depends, Request, Response, status

from opsdesk.api.deps import current_user, get_store, require_owner
from opsdesk.models.channel import Channel
from opsdesk.schemas.channel import ChannelCreate, ChannelOut, ChannelUpdate
from opsdesk.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/channels", tags=["Channels"], dependencies=[Depends(current_user)])


@router.get("", response_model=list[ChannelOut])
def list_channels(store: RecordStore = Depends(get_store)):
    return store.query(Channel, order_by=Channel.created_at.desc())


@router.post("", response_model=ChannelOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_owner)])
def create_channel(payload: ChannelCreate, store: RecordStore = Depends(get_store)):
    data = payload.model_dump()
    credentials = {"api_key": data.pop("api_key"), "api_secret": data.pop("api_secret")}
    channel = store.insert(Channel(credentials=credentials, **data))
    logger.info("channel #%s (%s) connected", channel.id, channel.type.value)
    return channel


@router.patch("/{channel_id}", response_model=ChannelOut, dependencies=[Depends(require_owner)])
def update_channel(channel_id: int, payload: ChannelUpdate, store: RecordStore = Depends(get_store)):
    values = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not values:
        return store.get(Channel, channel_id)
    channel = store.update_by_id(Channel, channel_id, values)
    logger.info("channel #%s updated: %s", channel_id, sorted(values))
    return channel


@router.post("/{channel_id}/sync", response_model=ChannelOut, dependencies=[Depends(require_owner)])
def sync_channel(channel_id: int, request: Request, store: RecordStore = Depends(get_store)):
    channel = store.update_by_id(Channel, channel_id, {"last_sync_at": request.app.state.clock()})
    logger.info("channel #%s synced", channel_id)
    return channel


@router.delete("/{channel_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_owner)])
def delete_channel(channel_id: int, store: RecordStore = Depends(get_store)):
    store.delete_by_id(Channel, channel_id)
    logger.info("channel #%s deleted", channel_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
