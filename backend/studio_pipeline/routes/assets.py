"""
Asset registration and lineage endpoints.

Uploading file bytes is handled elsewhere; these endpoints only record
that a stored file exists and expose lineage.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from ..assets.models import Asset, AssetCategory
from ..persistence.errors import SaveError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assets", tags=["assets"])


class RegisterAssetRequest(BaseModel):
    """Request body for asset registration."""

    model_config = ConfigDict(extra="forbid")

    name: str
    project_id: str
    file_key: str
    category: AssetCategory = AssetCategory.RAW
    mime_type: str = "audio/wav"
    size_bytes: int = Field(default=0, ge=0)
    parent_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


@router.post("", status_code=201)
async def register_asset(body: RegisterAssetRequest, request: Request):
    asset = Asset(**body.model_dump())
    try:
        request.app.state.pipeline.repository.add_asset(asset)
    except SaveError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info(f"Asset registered: {asset.id} ({asset.name}, {asset.category.value})")
    return asset.model_dump(mode="json")


@router.get("/{asset_id}")
async def get_asset(asset_id: str, request: Request):
    asset = request.app.state.pipeline.repository.get_asset(asset_id)
    if asset is None:
        raise HTTPException(status_code=404, detail=f"Asset not found: {asset_id}")
    return asset.model_dump(mode="json")


@router.get("/{asset_id}/lineage")
async def get_asset_lineage(asset_id: str, request: Request):
    lineage = request.app.state.pipeline.lineage
    chain = lineage.get_lineage(asset_id)
    if not chain:
        raise HTTPException(status_code=404, detail=f"Asset not found: {asset_id}")
    return {
        "asset_id": asset_id,
        "ancestors": [a.model_dump(mode="json") for a in chain[1:]],
        "derivatives": [a.model_dump(mode="json") for a in lineage.get_derivatives(asset_id)],
    }
