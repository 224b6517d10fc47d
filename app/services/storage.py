"""
app/services/storage.py – persistence for clients, campaigns, ad groups, keywords and ads.

Hierarchy
─────────
    Client → Campaign → AdGroup → {Keyword, Ad}

Deleting a record deletes everything below it. `LocalRecordStore` walks
the tree itself; `SupabaseRecordStore` relies on ON DELETE CASCADE foreign
keys in the database.

Both backends implement four table primitives (`_insert`, `_select`,
`_update`, `_delete`); the typed CRUD surface lives on `RecordStore`.
"""
from __future__ import annotations

import contextlib
import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel
from supabase import create_client

from app.config import settings
from app.errors import RecordNotFoundError, StorageError
from app.models import (
    AdCreate,
    AdGroupCreate,
    AdGroupRecord,
    AdRecord,
    CampaignCreate,
    CampaignRecord,
    ClientInfo,
    ClientRecord,
    KeywordMetric,
    KeywordRecord,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

CLIENTS = "clients"
CAMPAIGNS = "campaigns"
AD_GROUPS = "ad_groups"
KEYWORDS = "keywords"
ADS = "ads"
TABLES: tuple[str, ...] = (CLIENTS, CAMPAIGNS, AD_GROUPS, KEYWORDS, ADS)

# parent table -> [(child table, foreign key column)]
CHILDREN: dict[str, list[tuple[str, str]]] = {
    CLIENTS: [(CAMPAIGNS, "client_id")],
    CAMPAIGNS: [(AD_GROUPS, "campaign_id")],
    AD_GROUPS: [(KEYWORDS, "ad_group_id"), (ADS, "ad_group_id")],
    KEYWORDS: [],
    ADS: [],
}

_KIND: dict[str, str] = {
    CLIENTS: "Client",
    CAMPAIGNS: "Campaign",
    AD_GROUPS: "Ad group",
    KEYWORDS: "Keyword",
    ADS: "Ad",
}

_IMMUTABLE = {"id", "created_at", "client_id", "campaign_id", "ad_group_id"}


def _new_row(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        **payload,
        "id": str(uuid.uuid4()),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


class RecordStore(ABC):
    """Typed CRUD over the campaign hierarchy. Subclasses supply the table primitives."""

    backend = "abstract"

    # ── Primitives ────────────────────────────────────────────────────────────

    @abstractmethod
    def _insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def _select(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        """Rows matching every filter, oldest first."""

    @abstractmethod
    def _update(self, table: str, record_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        ...

    @abstractmethod
    def _delete(self, table: str, column: str, value: str) -> int:
        ...

    @abstractmethod
    def ping(self) -> bool:
        ...

    # ── Generic helpers ───────────────────────────────────────────────────────

    def _get(self, table: str, record_id: str, model: Type[R]) -> R:
        rows = self._select(table, id=record_id)
        if not rows:
            raise RecordNotFoundError(_KIND[table], record_id)
        return model.model_validate(rows[0])

    def _create(self, table: str, payload: BaseModel, model: Type[R]) -> R:
        row = _new_row(payload.model_dump(mode="json"))
        return model.model_validate(self._insert(table, [row])[0])

    def _patch(self, table: str, record_id: str, changes: dict[str, Any], model: Type[R]) -> R:
        current = self._get(table, record_id, model)
        allowed = {
            k: v for k, v in changes.items() if k in model.model_fields and k not in _IMMUTABLE
        }
        # Validate the merged record before writing
        merged = model.model_validate({**current.model_dump(mode="json"), **allowed})
        if not allowed:
            return merged
        updated = self._update(table, record_id, merged.model_dump(mode="json", include=set(allowed)))
        if updated is None:
            raise RecordNotFoundError(_KIND[table], record_id)
        return model.model_validate(updated)

    def _delete_tree(self, table: str, record_id: str) -> None:
        """Delete one record and every descendant."""
        for child_table, column in CHILDREN[table]:
            for child in self._select(child_table, **{column: record_id}):
                self._delete_tree(child_table, child["id"])
        self._delete(table, "id", record_id)

    def _require(self, table: str, record_id: str) -> None:
        if not self._select(table, id=record_id):
            raise RecordNotFoundError(_KIND[table], record_id)

    # ── Clients ───────────────────────────────────────────────────────────────

    def create_client(self, info: ClientInfo) -> ClientRecord:
        return self._create(CLIENTS, info, ClientRecord)

    def get_client(self, client_id: str) -> ClientRecord:
        return self._get(CLIENTS, client_id, ClientRecord)

    def list_clients(self) -> list[ClientRecord]:
        return [ClientRecord.model_validate(r) for r in self._select(CLIENTS)]

    def update_client(self, client_id: str, changes: dict[str, Any]) -> ClientRecord:
        return self._patch(CLIENTS, client_id, changes, ClientRecord)

    def delete_client(self, client_id: str) -> None:
        self._require(CLIENTS, client_id)
        self._delete_tree(CLIENTS, client_id)
        logger.info("Client deleted with all related records", extra={"client_id": client_id})

    # ── Campaigns ─────────────────────────────────────────────────────────────

    def create_campaign(self, data: CampaignCreate) -> CampaignRecord:
        self._require(CLIENTS, data.client_id)
        return self._create(CAMPAIGNS, data, CampaignRecord)

    def get_campaign(self, campaign_id: str) -> CampaignRecord:
        return self._get(CAMPAIGNS, campaign_id, CampaignRecord)

    def list_campaigns(self, client_id: str) -> list[CampaignRecord]:
        return [CampaignRecord.model_validate(r) for r in self._select(CAMPAIGNS, client_id=client_id)]

    def update_campaign(self, campaign_id: str, changes: dict[str, Any]) -> CampaignRecord:
        return self._patch(CAMPAIGNS, campaign_id, changes, CampaignRecord)

    def delete_campaign(self, campaign_id: str) -> None:
        self._require(CAMPAIGNS, campaign_id)
        self._delete_tree(CAMPAIGNS, campaign_id)

    # ── Ad groups ─────────────────────────────────────────────────────────────

    def create_ad_group(self, data: AdGroupCreate) -> AdGroupRecord:
        self._require(CAMPAIGNS, data.campaign_id)
        return self._create(AD_GROUPS, data, AdGroupRecord)

    def get_ad_group(self, ad_group_id: str) -> AdGroupRecord:
        return self._get(AD_GROUPS, ad_group_id, AdGroupRecord)

    def list_ad_groups(self, campaign_id: str) -> list[AdGroupRecord]:
        return [AdGroupRecord.model_validate(r) for r in self._select(AD_GROUPS, campaign_id=campaign_id)]

    def update_ad_group(self, ad_group_id: str, changes: dict[str, Any]) -> AdGroupRecord:
        return self._patch(AD_GROUPS, ad_group_id, changes, AdGroupRecord)

    def delete_ad_group(self, ad_group_id: str) -> None:
        self._require(AD_GROUPS, ad_group_id)
        self._delete_tree(AD_GROUPS, ad_group_id)

    # ── Keywords ──────────────────────────────────────────────────────────────

    def create_keywords(self, ad_group_id: str, metrics: list[KeywordMetric]) -> list[KeywordRecord]:
        self._require(AD_GROUPS, ad_group_id)
        if not metrics:
            return []
        rows = [_new_row({**m.model_dump(mode="json"), "ad_group_id": ad_group_id}) for m in metrics]
        return [KeywordRecord.model_validate(r) for r in self._insert(KEYWORDS, rows)]

    def list_keywords(self, ad_group_id: str) -> list[KeywordRecord]:
        return [KeywordRecord.model_validate(r) for r in self._select(KEYWORDS, ad_group_id=ad_group_id)]

    def delete_keywords(self, ad_group_id: str) -> int:
        return self._delete(KEYWORDS, "ad_group_id", ad_group_id)

    # ── Ads ───────────────────────────────────────────────────────────────────

    def create_ad(self, ad_group_id: str, data: AdCreate) -> AdRecord:
        self._require(AD_GROUPS, ad_group_id)
        row = _new_row({**data.model_dump(mode="json"), "ad_group_id": ad_group_id})
        return AdRecord.model_validate(self._insert(ADS, [row])[0])

    def get_ad(self, ad_id: str) -> AdRecord:
        return self._get(ADS, ad_id, AdRecord)

    def list_ads(self, ad_group_id: str) -> list[AdRecord]:
        return [AdRecord.model_validate(r) for r in self._select(ADS, ad_group_id=ad_group_id)]

    def update_ad(self, ad_id: str, changes: dict[str, Any]) -> AdRecord:
        return self._patch(ADS, ad_id, changes, AdRecord)

    def delete_ad(self, ad_id: str) -> None:
        self._require(ADS, ad_id)
        self._delete(ADS, "id", ad_id)

    # ── Aggregates ────────────────────────────────────────────────────────────

    def get_campaign_structure(self, campaign_id: str) -> dict[str, Any]:
        """Campaign with its ad groups, each carrying keywords and ads."""
        campaign = self.get_campaign(campaign_id)
        ad_groups = []
        for group in self.list_ad_groups(campaign_id):
            ad_groups.append(
                {
                    **group.model_dump(mode="json"),
                    "keywords": [k.model_dump(mode="json") for k in self.list_keywords(group.id)],
                    "ads": [a.model_dump(mode="json") for a in self.list_ads(group.id)],
                }
            )
        return {**campaign.model_dump(mode="json"), "ad_groups": ad_groups}


# ── Local backend ─────────────────────────────────────────────────────────────


class LocalRecordStore(RecordStore):
    """In-process store, optionally mirrored to a JSON file after every write."""

    backend = "local"

    def __init__(self, path: Optional[str] = None) -> None:
        self._lock = threading.RLock()
        self._path = Path(path) if path else None
        self._tables: dict[str, list[dict[str, Any]]] = {t: [] for t in TABLES}
        self._batching = False
        if self._path is not None and self._path.exists():
            try:
                loaded = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise StorageError(f"Could not read local store {self._path}", cause=exc) from exc
            for table in TABLES:
                self._tables[table] = list(loaded.get(table, []))
            logger.info("Local record store loaded", extra={"path": str(self._path)})

    def _write(self, tables: dict[str, list[dict[str, Any]]]) -> None:
        """Replace the JSON file with `tables` via a temp file in the same directory."""
        if self._path is None:
            return
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(tables, indent=2), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise StorageError(f"Could not write local store {self._path}", cause=exc) from exc

    def _commit(self, table: str, rows: list[dict[str, Any]]) -> None:
        # Memory only changes once the file holds the same state
        tables = {**self._tables, table: rows}
        if not self._batching:
            self._write(tables)
        self._tables = tables

    def _insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        with self._lock:
            self._commit(table, [*self._tables[table], *(dict(r) for r in rows)])
        return [dict(r) for r in rows]

    def _select(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        with self._lock:
            return [
                dict(row)
                for row in self._tables[table]
                if all(row.get(k) == v for k, v in filters.items())
            ]

    def _update(self, table: str, record_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        with self._lock:
            rows = self._tables[table]
            for i, row in enumerate(rows):
                if row["id"] == record_id:
                    updated = {**row, **changes}
                    self._commit(table, [*rows[:i], updated, *rows[i + 1:]])
                    return dict(updated)
        return None

    def _delete(self, table: str, column: str, value: str) -> int:
        with self._lock:
            before = self._tables[table]
            kept = [r for r in before if r.get(column) != value]
            if len(kept) != len(before):
                self._commit(table, kept)
            return len(before) - len(kept)

    def _delete_tree(self, table: str, record_id: str) -> None:
        """Cascade in memory, then write the file once; a failed write undoes the cascade."""
        with self._lock:
            if self._batching:
                super()._delete_tree(table, record_id)
                return
            snapshot = self._tables
            self._batching = True
            try:
                super()._delete_tree(table, record_id)
                self._write(self._tables)
            except StorageError:
                self._tables = snapshot
                raise
            finally:
                self._batching = False

    def ping(self) -> bool:
        return True


# ── Supabase backend ──────────────────────────────────────────────────────────


class SupabaseRecordStore(RecordStore):
    """Supabase/PostgREST backend. Tables mirror the local layout column for column."""

    backend = "supabase"

    def __init__(self, client: Any = None) -> None:
        if client is None:
            if not settings.supabase_url or not settings.supabase_key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_KEY must be set for the supabase storage backend."
                )
            client = create_client(settings.supabase_url, settings.supabase_key)
        self._client = client

    def _run(self, action: str, query: Any) -> list[dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as exc:
            logger.error("Supabase %s failed", action, extra={"error": str(exc)})
            raise StorageError(f"Supabase {action} failed: {exc}", cause=exc) from exc
        return list(response.data or [])

    def _insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return self._run(f"insert into {table}", self._client.table(table).insert(rows))

    def _select(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        query = self._client.table(table).select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        return self._run(f"select from {table}", query.order("created_at"))

    def _update(self, table: str, record_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        rows = self._run(
            f"update {table}", self._client.table(table).update(changes).eq("id", record_id)
        )
        return rows[0] if rows else None

    def _delete(self, table: str, column: str, value: str) -> int:
        rows = self._run(f"delete from {table}", self._client.table(table).delete().eq(column, value))
        return len(rows)

    def _delete_tree(self, table: str, record_id: str) -> None:
        # Foreign keys cascade in the database
        self._delete(table, "id", record_id)

    def ping(self) -> bool:
        try:
            self._run("ping", self._client.table(CLIENTS).select("id").limit(1))
        except StorageError:
            return False
        return True


# ── Module-level singleton (lazy init) ────────────────────────────────────────

_store_instance: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    """Return the configured RecordStore singleton (created on first call)."""
    global _store_instance
    if _store_instance is None:
        backend = settings.storage_backend.lower()
        if backend == "supabase":
            _store_instance = SupabaseRecordStore()
        elif backend == "local":
            _store_instance = LocalRecordStore(settings.local_storage_path or None)
        else:
            raise ValueError(f"Unknown STORAGE_BACKEND '{settings.storage_backend}'.")
        logger.info("Record store initialised", extra={"backend": _store_instance.backend})
    return _store_instance
