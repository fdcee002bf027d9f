"""
Sync API routes.

POST /api/sync is called by the scheduler; it needs the cron secret.
POST /api/sync/invid-images backfills Invid product images, one batch per call.
"""

import hmac
from typing import Optional

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse
import structlog

from config import settings
from exceptions import AppError, CronSecretError
from services.invid_image_service import InvidImageService
from services.sync_service import SyncService

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def check_cron_secret(header_value: Optional[str], query_value: Optional[str]) -> None:
    """
    Validate the cron secret from the X-Cron-Secret header or ?secret=.

    Raises:
        CronSecretError: Secret not configured (500) or wrong (401)
    """
    expected = settings.cron_secret
    if not expected:
        logger.error("cron_secret_not_configured")
        raise CronSecretError(configured=False)

    provided = header_value or query_value or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("cron_secret_rejected")
        raise CronSecretError(configured=True)


# ===================
# ROUTES
# ===================

@router.post("")
def run_sync(
    providers: Optional[list[str]] = Query(None, description="Limit to these providers"),
    secret: Optional[str] = Query(None, description="Cron secret"),
    x_cron_secret: Optional[str] = Header(None),
):
    """
    Run a full supplier sync.

    Returns the SyncResult; a run where no provider produced data
    returns 502 with SYNC_NO_DATA.
    """
    try:
        check_cron_secret(x_cron_secret, secret)
        result = SyncService().run(providers)
        return result.model_dump()
    except Exception as e:
        return handle_error(e)


@router.get("/last")
async def last_sync():
    """Last persisted sync report, success or failure."""
    try:
        result = SyncService().get_last_result()
        if result is None:
            return JSONResponse(
                status_code=404,
                content={
                    "error": {
                        "code": "SYNC_NOT_RUN",
                        "message": "No sync has been recorded yet"
                    }
                }
            )
        return result
    except Exception as e:
        return handle_error(e)


@router.post("/invid-images")
def backfill_invid_images(
    limit: Optional[int] = Query(None, ge=1, le=500, description="Products per batch"),
    secret: Optional[str] = Query(None, description="Cron secret"),
    x_cron_secret: Optional[str] = Header(None),
):
    """
    Find images for the next batch of image-less Invid products.

    Products whose image is found are activated. Call again while
    `pending` is above 0.
    """
    try:
        check_cron_secret(x_cron_secret, secret)
        return InvidImageService().backfill(limit).model_dump()
    except Exception as e:
        return handle_error(e)
