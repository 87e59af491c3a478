"""
Health endpoint.
"""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    pipeline = request.app.state.pipeline
    return {
        "status": "ok",
        "execution_mode": pipeline.settings.execution_mode.value,
        "ffmpeg_available": pipeline.tool.available,
        "queue_length": len(pipeline.queue.queued_job_ids()),
        "current_job_id": pipeline.queue.current_job_id,
    }
