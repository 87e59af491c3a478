"""
Studio pipeline backend service.

Run with:
    python -m studio_pipeline.main
or:
    uvicorn studio_pipeline.main:create_app --factory
"""

import logging
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .config import PipelineSettings
from .logging_config import configure_logging
from .pipeline import Pipeline
from .routes import assets, health, jobs, presets

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[PipelineSettings] = None,
    pipeline: Optional[Pipeline] = None,
) -> FastAPI:
    """
    Build the HTTP app.

    Args:
        settings: Runtime settings (read from the environment if omitted)
        pipeline: Pre-built pipeline (built from settings if omitted)
    """
    if pipeline is None:
        settings = settings or PipelineSettings.from_env()
        configure_logging(settings.log_level)
        pipeline = Pipeline(settings)

    app = FastAPI(title="Studio Pipeline Backend", version=__version__)
    app.state.pipeline = pipeline

    app.include_router(health.router)
    app.include_router(presets.router)
    app.include_router(assets.router)
    app.include_router(jobs.router)

    logger.info(
        f"[Startup] Pipeline ready: mode={pipeline.settings.execution_mode.value}, "
        f"storage={pipeline.settings.storage_path}"
    )
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="127.0.0.1", port=8085)
