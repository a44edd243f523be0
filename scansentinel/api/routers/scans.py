"""Scans router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from scansentinel.api.deps import get_lifecycle_manager
from scansentinel.api.schemas.common import PageMeta, PaginatedResponse
from scansentinel.api.schemas.scan import CreateScanRequest, ScanListItem, ScanResponse
from scansentinel.engines.scan_pipeline.lifecycle import ScanLifecycleManager

router = APIRouter()


@router.post("/", response_model=ScanResponse, status_code=201)
async def create_scan(
    body: CreateScanRequest,
    manager: ScanLifecycleManager = Depends(get_lifecycle_manager),
) -> ScanResponse:
    scan = await manager.create_scan(
        owner_id=body.owner_id,
        name=body.name,
        kind=body.kind,
        target=body.target,
        description=body.description,
        branch=body.branch,
    )
    return ScanResponse.model_validate(scan)


@router.get("/", response_model=PaginatedResponse[ScanListItem])
async def list_scans(
    owner_id: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    manager: ScanLifecycleManager = Depends(get_lifecycle_manager),
) -> PaginatedResponse[ScanListItem]:
    scans, total = await manager.list_scans(owner_id, limit=limit, offset=offset)
    return PaginatedResponse(
        data=[ScanListItem.model_validate(s) for s in scans],
        meta=PageMeta(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(scans) < total,
        ),
    )


@router.get("/{scan_id}", response_model=ScanResponse)
async def get_scan(
    scan_id: uuid.UUID,
    manager: ScanLifecycleManager = Depends(get_lifecycle_manager),
) -> ScanResponse:
    return ScanResponse.model_validate(await manager.get_scan(scan_id))


@router.post("/{scan_id}/start", response_model=ScanResponse, status_code=202)
async def start_scan(
    scan_id: uuid.UUID,
    manager: ScanLifecycleManager = Depends(get_lifecycle_manager),
) -> ScanResponse:
    return ScanResponse.model_validate(await manager.start_scan(scan_id))
