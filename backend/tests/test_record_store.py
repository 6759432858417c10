from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from opsdesk.core.errors import DuplicateRecord, RecordNotFound, SchemaNotProvisioned
from opsdesk.models.channel import Channel
from opsdesk.models.enums import ChannelType
from opsdesk.models.inventory import InventoryItem
from opsdesk.services.change_feed import ChangeFeed
from opsdesk.services.record_store import RecordStore


def test_insert_update_delete_publish_events(store, feed):
    events = []
    feed.subscribe("inventory", events.append)

    item = store.insert(InventoryItem(name="Mug", quantity=3))
    store.update_by_id(InventoryItem, item.id, {"quantity": 9})
    store.delete_by_id(InventoryItem, item.id)

    assert [e.type for e in events] == ["INSERT", "UPDATE", "DELETE"]
    assert events[1].record["quantity"] == 9
    assert events[2].record["name"] == "Mug"


def test_private_columns_stay_out_of_events(store, feed):
    events = []
    feed.subscribe("channels", events.append)
    store.insert(Channel(name="Shop", type=ChannelType.SHOPIFY, credentials={"api_key": "secret"}))
    assert "credentials" not in events[0].record
    assert events[0].record["type"] == "shopify"


def test_filtered_subscription(store, feed):
    seen = []
    a = store.insert(InventoryItem(name="A", quantity=1))
    b = store.insert(InventoryItem(name="B", quantity=1))
    feed.subscribe("inventory", seen.append, filters={"id": b.id})

    store.update_by_id(InventoryItem, a.id, {"quantity": 2})
    store.update_by_id(InventoryItem, b.id, {"quantity": 2})

    assert [e.record_id for e in seen] == [b.id]


def test_transaction_publishes_after_commit_only(store, feed):
    events = []
    feed.subscribe("inventory", events.append)

    with pytest.raises(RecordNotFound):
        with store.transaction():
            store.insert(InventoryItem(name="Ghost", quantity=1))
            store.update_by_id(InventoryItem, 999, {"quantity": 1})

    assert events == []
    assert store.query(InventoryItem) == []


def test_get_missing(store):
    with pytest.raises(RecordNotFound):
        store.get(InventoryItem, 42)
    assert store.find(InventoryItem, 42) is None


def test_duplicate_unique_value(store):
    store.insert(InventoryItem(name="Mug", sku="MUG-1", quantity=1))
    with pytest.raises(DuplicateRecord):
        store.insert(InventoryItem(name="Other mug", sku="MUG-1", quantity=1))
    # the session is usable again after the rollback
    assert len(store.query(InventoryItem)) == 1


def test_missing_table_is_reported_as_not_provisioned():
    engine = create_engine("sqlite://", poolclass=StaticPool)
    db = sessionmaker(bind=engine)()
    try:
        with pytest.raises(SchemaNotProvisioned) as err:
            RecordStore(db, ChangeFeed()).query(InventoryItem)
        assert err.value.table == "inventory"
        assert "setup" in err.value.to_dict()
    finally:
        db.close()
        engine.dispose()


def test_failing_listener_does_not_block_others(store, feed):
    seen = []

    def broken(event):
        raise RuntimeError("listener bug")

    feed.subscribe("inventory", broken)
    feed.subscribe("inventory", seen.append)
    store.insert(InventoryItem(name="Mug", quantity=1))
    assert len(seen) == 1


def test_closed_subscription_gets_nothing(store, feed):
    seen = []
    sub = feed.subscribe("inventory", seen.append)
    sub.close()
    store.insert(InventoryItem(name="Mug", quantity=1))
    assert seen == []
    assert feed.subscriber_count("inventory") == 0
