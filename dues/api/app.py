"""FastAPI application for the dues engine."""

import logging

from fastapi import FastAPI

from dues.api.dues import router as dues_router
from dues.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title=settings.api_title,
    description="Membership dues scheduling and voucher reconciliation",
    version=settings.api_version,
)

app.include_router(dues_router)


@app.get("/health")
def health() -> dict:
    """Liveness probe."""
    return {"status": "ok"}
