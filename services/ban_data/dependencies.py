"""
Route Dependencies
==================

FastAPI dependencies for the ban data routes.

Version: 0.1.0
"""

from fastapi import Request

from services.ban_data.service import DataService


def get_data_service(request: Request) -> DataService:
    """
    Get the DataService attached to the application.

    Usage:
        @router.get("/data")
        async def get_data(service: DataService = Depends(get_data_service)):
            ...
    """
    return request.app.state.data_service
