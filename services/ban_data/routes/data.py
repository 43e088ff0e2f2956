"""
Data Routes
===========

Serves the cached ban records.

Version: 0.1.0
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from services.ban_data.dependencies import get_data_service
from services.ban_data.service import DataService
from shared.logging import get_logger


logger = get_logger(__name__)

router = APIRouter()


STALE_HEADER = "X-Data-Stale"
ERROR_HEADER = "X-Data-Error"
FETCHED_AT_HEADER = "X-Data-Fetched-At"


@router.get("/data", response_model=list[dict[str, str]])
async def get_data(
    service: DataService = Depends(get_data_service),
) -> JSONResponse:
    """
    List all ban records.

    Served from cache while fresh; refreshed from the source otherwise.
    If the refresh fails, the previous records are returned with
    `X-Data-Stale: true`. Returns 503 when no data has ever been fetched.
    """
    result = await service.get_data()

    headers = {
        STALE_HEADER: "true" if result.stale else "false",
        FETCHED_AT_HEADER: result.dataset.fetched_at.isoformat(),
    }
    if result.error:
        # Header values must stay on one line
        message = " ".join(result.error.split())[:200]
        headers[ERROR_HEADER] = message.encode("ascii", "replace").decode("ascii")

    logger.debug(
        "data_served",
        records=len(result.dataset),
        stale=result.stale,
    )

    return JSONResponse(content=result.dataset.records_as_json(), headers=headers)
