"""
API v1 Router - LaserShop Offcuts
"""
from fastapi import APIRouter

from app.api.v1.endpoints import offcuts
from app.schemas.common import ErrorResponse, ValidationErrorResponse

router = APIRouter()

# Offcuts (inventory, lifecycle, fit suggestions)
router.include_router(
    offcuts.router,
    prefix="/offcuts",
    tags=["offcuts"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid offcut data"},
        404: {"model": ErrorResponse, "description": "Offcut, order item or batch not found"},
        409: {"model": ErrorResponse, "description": "Offcut is not in a state that allows this"},
        422: {"model": ValidationErrorResponse, "description": "Request validation failed"},
    },
)
