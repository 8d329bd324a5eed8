"""
Offcut API Endpoints

Inventory of reusable material remnants: registration, lifecycle
(reserve / use / delete) and fit suggestions for order items and batches.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_user_id, get_db, require_current_user_id
from app.core.offcut_config import MaterialCategory, OffcutCondition, OffcutStatus
from app.exceptions import LaserShopException
from app.schemas.offcut import (
    BatchSuggestionGroupResponse,
    OffcutCreate,
    OffcutDeleteResponse,
    OffcutDetailResponse,
    OffcutListResponse,
    OffcutReservationListResponse,
    OffcutReservationResponse,
    OffcutReserveRequest,
    OffcutResponse,
    OffcutSuggestionResponse,
    OffcutUpdate,
    OffcutUsageListResponse,
    OffcutUsageResponse,
    OffcutUseFullRequest,
    OffcutUsePartialRequest,
)
from app.services import offcut_service
from app.services.offcut_suggestions import suggestions_for_batch, suggestions_for_order_item

router = APIRouter()

# The create body is validated by parse_offcut_create so shape errors map to 400;
# this documents the tagged RECTANGLE / IRREGULAR schema it accepts.
_CREATE_OFFCUT_BODY = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": TypeAdapter(OffcutCreate).json_schema()}},
    }
}


# ============================================================================
# Queries
# ============================================================================

@router.get("/", response_model=OffcutListResponse)
def list_offcuts(
    material_category: Optional[MaterialCategory] = Query(None),
    thickness_mm: Optional[int] = Query(None, ge=1),
    status: Optional[OffcutStatus] = Query(None),
    condition: Optional[OffcutCondition] = Query(None),
    location: Optional[str] = Query(None, description="Substring of the location label"),
    search: Optional[str] = Query(None, description="Search notes and location label"),
    db: Session = Depends(get_db),
):
    """
    List offcuts (soft-deleted excluded), ordered by status then most recently updated.
    """
    return offcut_service.list_offcuts(
        db,
        material_category=material_category.value if material_category else None,
        thickness_mm=thickness_mm,
        status=status.value if status else None,
        condition=condition.value if condition else None,
        location=location,
        search=search,
    )


@router.get("/usages", response_model=OffcutUsageListResponse)
def list_usages(db: Session = Depends(get_db)):
    """Most recent consumption records, newest first."""
    return offcut_service.list_usages(db)


@router.get("/reservations", response_model=OffcutReservationListResponse)
def list_reservations(db: Session = Depends(get_db)):
    """Open reservations, newest first."""
    return offcut_service.list_reservations(db)


@router.get("/suggestions", response_model=List[OffcutSuggestionResponse])
def get_suggestions(
    order_item_id: int = Query(..., description="Order item to find offcuts for"),
    db: Session = Depends(get_db),
):
    """
    Ranked offcuts that could be used for an order item.

    Best fit first. Empty when the item's material cannot be determined.
    """
    return suggestions_for_order_item(db, order_item_id)


@router.get("/batch-suggestions", response_model=List[BatchSuggestionGroupResponse])
def get_batch_suggestions(
    batch_id: int = Query(..., description="Production batch to find offcuts for"),
    db: Session = Depends(get_db),
):
    """
    Offcuts for each (material, thickness) group of a production batch,
    smallest sufficient offcut first.
    """
    return suggestions_for_batch(db, batch_id)


@router.get("/{offcut_id}", response_model=OffcutDetailResponse)
def get_offcut(offcut_id: int, db: Session = Depends(get_db)):
    """Get an offcut with its usage history and open reservations."""
    return offcut_service.get_offcut(db, offcut_id)


# ============================================================================
# Mutations
# ============================================================================

@router.post("/", response_model=OffcutResponse, status_code=201, openapi_extra=_CREATE_OFFCUT_BODY)
def create_offcut(
    payload: Dict[str, Any] = Body(..., description="RECTANGLE or IRREGULAR offcut, tagged by shape_type"),
    user_id: Optional[int] = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Register an offcut.

    - RECTANGLE requires width_mm and height_mm
    - IRREGULAR requires estimated_area_mm2 or both bounding-box sides
    """
    data = offcut_service.parse_offcut_create(payload)
    try:
        offcut = offcut_service.create_offcut(db, data, created_by_user_id=user_id)
        db.commit()
    except LaserShopException:
        db.rollback()
        raise
    db.refresh(offcut)
    return offcut


@router.patch("/{offcut_id}", response_model=OffcutResponse)
def update_offcut(
    offcut_id: int,
    data: OffcutUpdate,
    db: Session = Depends(get_db),
):
    """Patch an offcut. Status cannot be changed here."""
    try:
        offcut = offcut_service.update_offcut(db, offcut_id, data)
        db.commit()
    except LaserShopException:
        db.rollback()
        raise
    db.refresh(offcut)
    return offcut


@router.delete("/{offcut_id}", response_model=OffcutDeleteResponse)
def delete_offcut(offcut_id: int, db: Session = Depends(get_db)):
    """Soft-delete an offcut. It becomes DISCARDED and disappears from listings."""
    try:
        offcut = offcut_service.soft_delete_offcut(db, offcut_id)
        db.commit()
    except LaserShopException:
        db.rollback()
        raise
    return {"id": offcut.id}


@router.post("/{offcut_id}/reserve", response_model=OffcutReservationResponse, status_code=201)
def reserve_offcut(
    offcut_id: int,
    request: OffcutReserveRequest,
    user_id: int = Depends(require_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Reserve an AVAILABLE offcut for an order item and/or batch.

    Returns 409 if the offcut is no longer AVAILABLE.
    """
    try:
        reservation = offcut_service.reserve_offcut(
            db,
            offcut_id,
            user_id=user_id,
            order_item_id=request.order_item_id,
            batch_id=request.batch_id,
        )
        db.commit()
    except LaserShopException:
        db.rollback()
        raise
    db.refresh(reservation)
    return reservation


@router.post("/{offcut_id}/use-full", response_model=OffcutUsageResponse, status_code=201)
def use_offcut_full(
    offcut_id: int,
    request: OffcutUseFullRequest,
    user_id: Optional[int] = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Consume a whole offcut. Releases every reservation on it."""
    try:
        usage = offcut_service.use_full(
            db,
            offcut_id,
            order_item_id=request.order_item_id,
            batch_id=request.batch_id,
            notes=request.notes,
            user_id=user_id,
        )
        db.commit()
    except LaserShopException:
        db.rollback()
        raise
    db.refresh(usage)
    return usage


@router.post("/{offcut_id}/use-partial", response_model=OffcutUsageResponse, status_code=201)
def use_offcut_partial(
    offcut_id: int,
    request: OffcutUsePartialRequest,
    user_id: Optional[int] = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Consume part of an offcut.

    The remaining area is reduced; an offcut left with nothing becomes USED,
    one left with a sliver below the discard fraction becomes DISCARDED.
    """
    try:
        usage = offcut_service.use_partial(
            db,
            offcut_id,
            used_area_mm2=request.used_area_mm2,
            used_width_mm=request.used_width_mm,
            used_height_mm=request.used_height_mm,
            order_item_id=request.order_item_id,
            batch_id=request.batch_id,
            notes=request.notes,
            user_id=user_id,
        )
        db.commit()
    except LaserShopException:
        db.rollback()
        raise
    db.refresh(usage)
    return usage
