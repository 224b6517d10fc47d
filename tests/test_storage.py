"""
tests/test_storage.py – record store CRUD and cascading deletes.
"""
from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from app.config import settings
from app.errors import RecordNotFoundError, StorageError
from app.models import (
    AdCreate,
    AdGroupCreate,
    CampaignCreate,
    ClientInfo,
    CopySource,
    KeywordMetric,
)
from app.services.storage import LocalRecordStore, RecordStore, SupabaseRecordStore


@pytest.fixture
def store() -> LocalRecordStore:
    return LocalRecordStore()


def _tree(store: LocalRecordStore):
    client = store.create_client(ClientInfo(name="Aero Apartments", geographic_targeting="Austin, TX"))
    campaign = store.create_campaign(CampaignCreate(client_id=client.id, name="Brand Search"))
    group = store.create_ad_group(AdGroupCreate(campaign_id=campaign.id, name="2 Bedroom"))
    store.create_keywords(
        group.id,
        [
            KeywordMetric(keyword="2 bedroom apartments austin", search_volume=880),
            KeywordMetric(keyword="two bedroom apartments", search_volume=320),
        ],
    )
    ad = store.create_ad(group.id, AdCreate(headlines=["Spacious Two Bedroom Layouts"]))
    return client, campaign, group, ad


class TestLocalRecordStore:
    def test_create_and_get(self, store):
        client = store.create_client(ClientInfo(name="Aero Apartments"))
        assert client.id
        assert store.get_client(client.id).name == "Aero Apartments"

    def test_missing_record(self, store):
        with pytest.raises(RecordNotFoundError) as exc_info:
            store.get_campaign("nope")
        assert "Campaign 'nope' not found." in str(exc_info.value)

    def test_child_needs_existing_parent(self, store):
        with pytest.raises(RecordNotFoundError):
            store.create_campaign(CampaignCreate(client_id="missing", name="Orphan"))
        with pytest.raises(RecordNotFoundError):
            store.create_ad("missing", AdCreate())

    def test_lists_are_scoped_and_ordered(self, store):
        client = store.create_client(ClientInfo(name="A"))
        other = store.create_client(ClientInfo(name="B"))
        first = store.create_campaign(CampaignCreate(client_id=client.id, name="First"))
        second = store.create_campaign(CampaignCreate(client_id=client.id, name="Second"))
        store.create_campaign(CampaignCreate(client_id=other.id, name="Elsewhere"))

        assert [c.id for c in store.list_campaigns(client.id)] == [first.id, second.id]
        assert len(store.list_clients()) == 2

    def test_update_ignores_immutable_fields(self, store):
        client, campaign, _, _ = _tree(store)
        updated = store.update_campaign(
            campaign.id, {"name": "Renamed", "client_id": "hijack", "id": "new-id", "unknown": 1}
        )
        assert updated.name == "Renamed"
        assert updated.client_id == client.id
        assert updated.id == campaign.id

    def test_update_missing_record(self, store):
        with pytest.raises(RecordNotFoundError):
            store.update_client("nope", {"name": "x"})

    def test_delete_client_cascades(self, store):
        client, campaign, group, ad = _tree(store)

        store.delete_client(client.id)

        with pytest.raises(RecordNotFoundError):
            store.get_campaign(campaign.id)
        with pytest.raises(RecordNotFoundError):
            store.get_ad_group(group.id)
        with pytest.raises(RecordNotFoundError):
            store.get_ad(ad.id)
        assert store.list_keywords(group.id) == []

    def test_delete_campaign_keeps_client(self, store):
        client, campaign, group, _ = _tree(store)
        store.delete_campaign(campaign.id)
        assert store.get_client(client.id).name == "Aero Apartments"
        assert store.list_ads(group.id) == []

    def test_delete_missing_raises(self, store):
        with pytest.raises(RecordNotFoundError):
            store.delete_ad_group("nope")

    def test_keywords_bulk(self, store):
        _, _, group, _ = _tree(store)
        assert len(store.list_keywords(group.id)) == 2
        assert store.delete_keywords(group.id) == 2
        assert store.list_keywords(group.id) == []
        assert store.create_keywords(group.id, []) == []

    def test_ads(self, store):
        _, _, group, ad = _tree(store)
        assert ad.source == CopySource.GENERATED
        updated = store.update_ad(ad.id, {"paths": ["austin", "2-bedroom"]})
        assert updated.paths == ["austin", "2-bedroom"]
        store.delete_ad(ad.id)
        assert store.list_ads(group.id) == []

    def test_campaign_structure(self, store):
        _, campaign, group, ad = _tree(store)
        structure = store.get_campaign_structure(campaign.id)
        assert structure["id"] == campaign.id
        assert structure["ad_groups"][0]["id"] == group.id
        assert len(structure["ad_groups"][0]["keywords"]) == 2
        assert structure["ad_groups"][0]["ads"][0]["id"] == ad.id

    def test_json_file_round_trip(self, tmp_path):
        path = tmp_path / "records.json"
        first = LocalRecordStore(str(path))
        client = first.create_client(ClientInfo(name="Persisted"))

        assert client.id in path.read_text(encoding="utf-8")
        second = LocalRecordStore(str(path))
        assert second.get_client(client.id).name == "Persisted"

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "records.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            LocalRecordStore(str(path))

    def test_failed_write_leaves_store_unchanged(self, tmp_path, monkeypatch):
        path = tmp_path / "records.json"
        store = LocalRecordStore(str(path))
        client, campaign, _, _ = _tree(store)

        def _disk_full(self, *args, **kwargs):
            raise OSError("No space left on device")

        monkeypatch.setattr(Path, "write_text", _disk_full)

        with pytest.raises(StorageError):
            store.create_client(ClientInfo(name="Never Saved"))
        with pytest.raises(StorageError):
            store.update_client(client.id, {"name": "Renamed"})
        with pytest.raises(StorageError):
            store.delete_client(client.id)

        assert [c.name for c in store.list_clients()] == ["Aero Apartments"]
        assert store.get_campaign(campaign.id).client_id == client.id
        assert len(store.get_campaign_structure(campaign.id)["ad_groups"]) == 1

        reloaded = LocalRecordStore(str(path))
        assert [c.name for c in reloaded.list_clients()] == ["Aero Apartments"]
        assert not (tmp_path / "records.json.tmp").exists()

    def test_ping(self, store):
        assert store.ping() is True

    def test_base_store_is_abstract(self):
        with pytest.raises(TypeError):
            RecordStore()


class TestSupabaseRecordStore:
    def _client(self, data=None, error: Exception | None = None) -> MagicMock:
        client = MagicMock()
        query = client.table.return_value
        # Every builder method returns the same query object
        for method in ("select", "insert", "update", "delete", "eq", "order", "limit"):
            getattr(query, method).return_value = query
        if error is not None:
            query.execute.side_effect = error
        else:
            query.execute.return_value = MagicMock(data=data if data is not None else [])
        return client

    def test_missing_config_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "supabase_url", "")
        with pytest.raises(ValueError):
            SupabaseRecordStore()

    def test_get_client_filters_by_id(self):
        row = {"id": "c1", "name": "Aero", "created_at": "2026-01-01T00:00:00+00:00"}
        client = self._client(data=[row])
        store = SupabaseRecordStore(client)

        record = store.get_client("c1")

        assert record.name == "Aero"
        client.table.assert_called_with("clients")
        client.table.return_value.eq.assert_called_with("id", "c1")

    def test_insert_returns_row(self):
        client = self._client()
        store = SupabaseRecordStore(client)
        query = client.table.return_value
        query.execute.side_effect = lambda: MagicMock(data=query.insert.call_args.args[0])

        record = store.create_client(ClientInfo(name="Aero"))

        assert record.name == "Aero"
        assert record.id

    def test_delete_relies_on_database_cascade(self):
        client = self._client(data=[{"id": "c1", "created_at": "2026-01-01T00:00:00+00:00"}])
        store = SupabaseRecordStore(client)

        store.delete_client("c1")

        query = client.table.return_value
        query.delete.assert_called_once()
        assert [c.args[0] for c in client.table.call_args_list] == ["clients", "clients"]

    def test_backend_error_becomes_storage_error(self):
        store = SupabaseRecordStore(self._client(error=RuntimeError("connection refused")))
        with pytest.raises(StorageError):
            store.list_clients()
        assert store.ping() is False

