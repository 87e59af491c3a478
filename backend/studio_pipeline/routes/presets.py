"""
Preset catalog endpoints (read-only).
"""

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(prefix="/presets", tags=["presets"])


@router.get("")
async def list_presets(request: Request):
    registry = request.app.state.pipeline.presets
    return {"presets": [preset.model_dump(mode="json") for preset in registry.list_presets()]}


@router.get("/{preset_id}")
async def get_preset(preset_id: str, request: Request):
    preset = request.app.state.pipeline.presets.get_preset_definition(preset_id)
    if preset is None:
        raise HTTPException(status_code=404, detail=f"Unknown preset: {preset_id}")
    return preset.model_dump(mode="json")
