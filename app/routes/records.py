"""
app/routes/records.py – CRUD endpoints for clients, campaigns, ad groups, keywords and ads.

Deletes cascade down the hierarchy: a client takes its campaigns with it,
a campaign its ad groups, an ad group its keywords and ads.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from app.errors import RecordNotFoundError, StorageError
from app.models import (
    AdCreate,
    AdGroupContext,
    AdGroupCreate,
    AdGroupRecord,
    AdRecord,
    CampaignContext,
    CampaignCreate,
    CampaignRecord,
    ClientInfo,
    ClientRecord,
    KeywordMetric,
    KeywordRecord,
)
from app.services.storage import RecordStore, get_record_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Records"])


@contextmanager
def _storage_errors() -> Iterator[None]:
    """Translate store exceptions into HTTP errors."""
    try:
        yield
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc
    except StorageError as exc:
        logger.error("Storage backend failed", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


# ── Clients ───────────────────────────────────────────────────────────────────


@router.post("/clients", response_model=ClientRecord, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientInfo, store: RecordStore = Depends(get_record_store)
) -> ClientRecord:
    with _storage_errors():
        return store.create_client(payload)


@router.get("/clients", response_model=list[ClientRecord])
async def list_clients(store: RecordStore = Depends(get_record_store)) -> list[ClientRecord]:
    with _storage_errors():
        return store.list_clients()


@router.get("/clients/{client_id}", response_model=ClientRecord)
async def get_client(client_id: str, store: RecordStore = Depends(get_record_store)) -> ClientRecord:
    with _storage_errors():
        return store.get_client(client_id)


@router.patch("/clients/{client_id}", response_model=ClientRecord)
async def update_client(
    client_id: str,
    changes: dict[str, Any] = Body(..., examples=[{"name": "Aero Apartments Downtown"}]),
    store: RecordStore = Depends(get_record_store),
) -> ClientRecord:
    with _storage_errors():
        return store.update_client(client_id, changes)


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(client_id: str, store: RecordStore = Depends(get_record_store)) -> None:
    with _storage_errors():
        store.delete_client(client_id)


# ── Campaigns ─────────────────────────────────────────────────────────────────


@router.post(
    "/clients/{client_id}/campaigns",
    response_model=CampaignRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_campaign(
    client_id: str,
    payload: CampaignContext,
    store: RecordStore = Depends(get_record_store),
) -> CampaignRecord:
    with _storage_errors():
        return store.create_campaign(
            CampaignCreate(client_id=client_id, **payload.model_dump())
        )


@router.get("/clients/{client_id}/campaigns", response_model=list[CampaignRecord])
async def list_campaigns(
    client_id: str, store: RecordStore = Depends(get_record_store)
) -> list[CampaignRecord]:
    with _storage_errors():
        store.get_client(client_id)
        return store.list_campaigns(client_id)


@router.get("/campaigns/{campaign_id}", response_model=CampaignRecord)
async def get_campaign(
    campaign_id: str, store: RecordStore = Depends(get_record_store)
) -> CampaignRecord:
    with _storage_errors():
        return store.get_campaign(campaign_id)


@router.get(
    "/campaigns/{campaign_id}/structure",
    summary="Campaign with every ad group, keyword and ad",
)
async def get_campaign_structure(
    campaign_id: str, store: RecordStore = Depends(get_record_store)
) -> dict[str, Any]:
    with _storage_errors():
        return store.get_campaign_structure(campaign_id)


@router.patch("/campaigns/{campaign_id}", response_model=CampaignRecord)
async def update_campaign(
    campaign_id: str,
    changes: dict[str, Any] = Body(..., examples=[{"name": "Aero – Brand Search"}]),
    store: RecordStore = Depends(get_record_store),
) -> CampaignRecord:
    with _storage_errors():
        return store.update_campaign(campaign_id, changes)


@router.delete("/campaigns/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_campaign(campaign_id: str, store: RecordStore = Depends(get_record_store)) -> None:
    with _storage_errors():
        store.delete_campaign(campaign_id)


# ── Ad groups ─────────────────────────────────────────────────────────────────


@router.post(
    "/campaigns/{campaign_id}/ad-groups",
    response_model=AdGroupRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_ad_group(
    campaign_id: str,
    payload: AdGroupContext,
    store: RecordStore = Depends(get_record_store),
) -> AdGroupRecord:
    with _storage_errors():
        return store.create_ad_group(
            AdGroupCreate(campaign_id=campaign_id, **payload.model_dump())
        )


@router.get("/campaigns/{campaign_id}/ad-groups", response_model=list[AdGroupRecord])
async def list_ad_groups(
    campaign_id: str, store: RecordStore = Depends(get_record_store)
) -> list[AdGroupRecord]:
    with _storage_errors():
        store.get_campaign(campaign_id)
        return store.list_ad_groups(campaign_id)


@router.get("/ad-groups/{ad_group_id}", response_model=AdGroupRecord)
async def get_ad_group(
    ad_group_id: str, store: RecordStore = Depends(get_record_store)
) -> AdGroupRecord:
    with _storage_errors():
        return store.get_ad_group(ad_group_id)


@router.patch("/ad-groups/{ad_group_id}", response_model=AdGroupRecord)
async def update_ad_group(
    ad_group_id: str,
    changes: dict[str, Any] = Body(..., examples=[{"name": "2 Bedroom"}]),
    store: RecordStore = Depends(get_record_store),
) -> AdGroupRecord:
    with _storage_errors():
        return store.update_ad_group(ad_group_id, changes)


@router.delete("/ad-groups/{ad_group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ad_group(ad_group_id: str, store: RecordStore = Depends(get_record_store)) -> None:
    with _storage_errors():
        store.delete_ad_group(ad_group_id)


# ── Keywords ──────────────────────────────────────────────────────────────────


@router.post(
    "/ad-groups/{ad_group_id}/keywords",
    response_model=list[KeywordRecord],
    status_code=status.HTTP_201_CREATED,
    summary="Attach keywords to an ad group in bulk",
)
async def create_keywords(
    ad_group_id: str,
    payload: list[KeywordMetric],
    store: RecordStore = Depends(get_record_store),
) -> list[KeywordRecord]:
    with _storage_errors():
        return store.create_keywords(ad_group_id, payload)


@router.get("/ad-groups/{ad_group_id}/keywords", response_model=list[KeywordRecord])
async def list_keywords(
    ad_group_id: str, store: RecordStore = Depends(get_record_store)
) -> list[KeywordRecord]:
    with _storage_errors():
        store.get_ad_group(ad_group_id)
        return store.list_keywords(ad_group_id)


@router.delete("/ad-groups/{ad_group_id}/keywords", status_code=status.HTTP_204_NO_CONTENT)
async def delete_keywords(ad_group_id: str, store: RecordStore = Depends(get_record_store)) -> None:
    with _storage_errors():
        store.get_ad_group(ad_group_id)
        store.delete_keywords(ad_group_id)


# ── Ads ───────────────────────────────────────────────────────────────────────


@router.post(
    "/ad-groups/{ad_group_id}/ads",
    response_model=AdRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_ad(
    ad_group_id: str,
    payload: AdCreate,
    store: RecordStore = Depends(get_record_store),
) -> AdRecord:
    with _storage_errors():
        return store.create_ad(ad_group_id, payload)


@router.get("/ad-groups/{ad_group_id}/ads", response_model=list[AdRecord])
async def list_ads(ad_group_id: str, store: RecordStore = Depends(get_record_store)) -> list[AdRecord]:
    with _storage_errors():
        store.get_ad_group(ad_group_id)
        return store.list_ads(ad_group_id)


@router.get("/ads/{ad_id}", response_model=AdRecord)
async def get_ad(ad_id: str, store: RecordStore = Depends(get_record_store)) -> AdRecord:
    with _storage_errors():
        return store.get_ad(ad_id)


@router.patch("/ads/{ad_id}", response_model=AdRecord)
async def update_ad(
    ad_id: str,
    changes: dict[str, Any] = Body(..., examples=[{"paths": ["austin", "2-bedroom"]}]),
    store: RecordStore = Depends(get_record_store),
) -> AdRecord:
    with _storage_errors():
        return store.update_ad(ad_id, changes)


@router.delete("/ads/{ad_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ad(ad_id: str, store: RecordStore = Depends(get_record_store)) -> None:
    with _storage_errors():
        store.delete_ad(ad_id)
