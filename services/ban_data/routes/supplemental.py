"""
Supplemental Routes
===================

Serves the static tag -> links/preview/description file.

Version: 0.1.0
"""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from services.ban_data.dependencies import get_data_service
from services.ban_data.service import DataService


router = APIRouter()


@router.get("/supplemental", response_model=list[dict[str, Any]])
async def get_supplemental(
    service: DataService = Depends(get_data_service),
) -> JSONResponse:
    """
    List supplemental entries exactly as stored in the file.

    Returns 500 if the file is missing or malformed.
    """
    return JSONResponse(content=await service.serve_supplemental())
