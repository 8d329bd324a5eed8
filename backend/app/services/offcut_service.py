"""
Offcut Service - offcut inventory and its lifecycle state machine.

    create -> AVAILABLE -> (reserve) RESERVED -> use_full    -> USED
                                              -> use_partial -> AVAILABLE/RESERVED (area reduced)
                                                             -> USED      (nothing left)
                                                             -> DISCARDED (sliver below discard fraction)
    soft_delete -> DISCARDED + deleted_at (irreversible)

Every mutating function re-reads the offcut row with SELECT ... FOR UPDATE
inside the caller's transaction, re-checks its status, then writes. Two
callers racing for the same offcut are serialized by the row lock; the loser
sees the new status and gets ConflictError. Nothing is retried here.

IMPORTANT: This service does NOT commit. Caller commits on success and rolls
back on error, so each call is one atomic transaction.

Usage:
    from app.services.offcut_service import reserve_offcut

    try:
        reservation = reserve_offcut(db, offcut_id, user_id=current_user_id, order_item_id=42)
        db.commit()
    except LaserShopException:
        db.rollback()
        raise
"""
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import pydantic
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.offcut_config import (
    CONSUMABLE_STATUSES,
    OffcutShapeType,
    OffcutStatus,
    OffcutUsageType,
    get_allowed_offcut_transitions,
    get_discard_fraction,
    is_valid_offcut_transition,
)
from app.core.settings import settings
from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.material import Material
from app.models.offcut import Offcut, OffcutReservation, OffcutUsage
from app.schemas.offcut import OffcutCreate, OffcutUpdate

logger = get_logger(__name__)

_create_adapter = pydantic.TypeAdapter(OffcutCreate)

# Columns an update may change but never null out
_REQUIRED_COLUMNS = {"thickness_mm", "quantity", "condition"}


# =============================================================================
# Helpers
# =============================================================================

def parse_offcut_create(data: Mapping[str, Any]):
    """
    Validate a raw payload into RectangleOffcutCreate / IrregularOffcutCreate.

    Raises:
        ValidationError: If shape-specific required fields are missing or invalid
    """
    try:
        return _create_adapter.validate_python(dict(data))
    except pydantic.ValidationError as e:
        errors = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        first = errors[0] if errors else {"message": "Invalid offcut"}
        raise ValidationError(
            first["message"],
            field=first.get("field") or None,
            details={"errors": errors},
        ) from e


def check_shape_fields(offcut: Offcut) -> None:
    """
    Enforce shape-specific required fields on an offcut row.

    Raises:
        ValidationError: RECTANGLE without width+height, IRREGULAR without area or bounding box
    """
    if offcut.shape_type == OffcutShapeType.RECTANGLE:
        if not offcut.width_mm or not offcut.height_mm:
            raise ValidationError(
                "Width and height are required for rectangle offcuts", field="width_mm"
            )
    else:
        has_box = bool(offcut.bounding_box_width_mm and offcut.bounding_box_height_mm)
        if offcut.estimated_area_mm2 is None and not has_box:
            raise ValidationError(
                "Estimated area or bounding box is required for irregular offcuts",
                field="estimated_area_mm2",
            )


def _get_live_offcut(db: Session, offcut_id: int) -> Offcut:
    """Read without locking; soft-deleted rows count as missing."""
    offcut = db.get(Offcut, offcut_id)
    if not offcut or offcut.is_deleted:
        raise NotFoundError("Offcut", offcut_id)
    return offcut


def _lock_offcut(db: Session, offcut_id: int) -> Offcut:
    """
    Re-read the offcut row under a row lock for the current transaction.

    populate_existing() discards any stale copy in the session identity map so
    the status check below sees what is committed now.
    """
    offcut = (
        db.query(Offcut)
        .filter(Offcut.id == offcut_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not offcut or offcut.is_deleted:
        raise NotFoundError("Offcut", offcut_id)
    return offcut


def _ensure_consumable(offcut: Offcut) -> None:
    if offcut.status not in CONSUMABLE_STATUSES:
        raise ConflictError(
            "Offcut is already used or discarded",
            current_state=offcut.status,
            allowed_states=sorted(s.value for s in CONSUMABLE_STATUSES),
        )


def _set_status(offcut: Offcut, new_status: str) -> None:
    if not is_valid_offcut_transition(offcut.status, new_status):
        raise ConflictError(
            f"Cannot move offcut from {offcut.status} to {new_status}",
            current_state=offcut.status,
            allowed_states=get_allowed_offcut_transitions(offcut.status),
        )
    offcut.status = new_status
    offcut.updated_at = datetime.utcnow()


# =============================================================================
# Create / update / delete
# =============================================================================

def create_offcut(
    db: Session,
    data: OffcutCreate,
    created_by_user_id: Optional[int] = None,
) -> Offcut:
    """
    Register a new offcut. New offcuts always start AVAILABLE.

    Args:
        db: Database session
        data: RectangleOffcutCreate or IrregularOffcutCreate (see parse_offcut_create)
        created_by_user_id: Acting user

    Raises:
        NotFoundError: If the material does not exist
        ValidationError: If shape-specific fields are missing
    """
    material = db.get(Material, data.material_id)
    if not material:
        raise NotFoundError("Material", data.material_id)

    fields = data.model_dump()
    offcut = Offcut(
        material_id=material.id,
        thickness_mm=fields["thickness_mm"],
        shape_type=OffcutShapeType(fields["shape_type"]).value,
        width_mm=fields.get("width_mm"),
        height_mm=fields.get("height_mm"),
        bounding_box_width_mm=fields.get("bounding_box_width_mm"),
        bounding_box_height_mm=fields.get("bounding_box_height_mm"),
        estimated_area_mm2=fields.get("estimated_area_mm2"),
        quantity=fields.get("quantity") or 1,
        location_label=fields.get("location_label"),
        condition=fields["condition"].value,
        status=OffcutStatus.AVAILABLE.value,
        source=fields["source"].value,
        notes=fields.get("notes"),
        created_by_user_id=created_by_user_id,
    )
    check_shape_fields(offcut)

    db.add(offcut)
    db.flush()

    logger.info(
        f"Created offcut {offcut.id} ({offcut.shape_type}, material {material.id})",
        extra={"offcut_id": offcut.id, "status": offcut.status},
    )
    return offcut


def update_offcut(db: Session, offcut_id: int, data: OffcutUpdate) -> Offcut:
    """
    Patch an offcut. Only fields explicitly present in the payload are written;
    an explicit null clears the column.

    Raises:
        NotFoundError: If missing or soft-deleted
        ValidationError: If the patch leaves the shape without its required fields
    """
    offcut = _lock_offcut(db, offcut_id)

    changes = data.model_dump(exclude_unset=True)
    for field_name, value in changes.items():
        if value is None and field_name in _REQUIRED_COLUMNS:
            raise ValidationError(f"{field_name} cannot be cleared", field=field_name)
        if hasattr(value, "value"):
            value = value.value
        setattr(offcut, field_name, value)

    check_shape_fields(offcut)

    offcut.updated_at = datetime.utcnow()
    db.flush()

    logger.info(
        f"Updated offcut {offcut.id}: {sorted(changes)}",
        extra={"offcut_id": offcut.id, "status": offcut.status},
    )
    return offcut


def soft_delete_offcut(db: Session, offcut_id: int) -> Offcut:
    """
    Mark an offcut deleted and DISCARDED and drop its reservations.
    Irreversible; a second call raises NotFoundError.
    """
    offcut = _lock_offcut(db, offcut_id)

    offcut.deleted_at = datetime.utcnow()
    _set_status(offcut, OffcutStatus.DISCARDED.value)
    released = (
        db.query(OffcutReservation)
        .filter(OffcutReservation.offcut_id == offcut.id)
        .delete(synchronize_session="fetch")
    )
    db.flush()

    logger.info(
        f"Soft-deleted offcut {offcut.id} ({released} reservation(s) released)",
        extra={"offcut_id": offcut.id, "status": offcut.status},
    )
    return offcut


# =============================================================================
# Lifecycle
# =============================================================================

def reserve_offcut(
    db: Session,
    offcut_id: int,
    user_id: int,
    order_item_id: Optional[int] = None,
    batch_id: Optional[int] = None,
) -> OffcutReservation:
    """
    Place a hold on an AVAILABLE offcut.

    Raises:
        NotFoundError: If missing or soft-deleted
        ConflictError: If the offcut is not AVAILABLE
    """
    offcut = _lock_offcut(db, offcut_id)

    if offcut.status != OffcutStatus.AVAILABLE:
        raise ConflictError(
            "Offcut is not available for reservation",
            current_state=offcut.status,
            allowed_states=[OffcutStatus.AVAILABLE.value],
        )

    reservation = OffcutReservation(
        offcut_id=offcut.id,
        order_item_id=order_item_id,
        batch_id=batch_id,
        reserved_by_user_id=user_id,
    )
    db.add(reservation)
    _set_status(offcut, OffcutStatus.RESERVED.value)
    db.flush()

    logger.info(
        f"Reserved offcut {offcut.id} (order item {order_item_id}, batch {batch_id})",
        extra={"offcut_id": offcut.id, "status": offcut.status, "reservation_id": reservation.id},
    )
    return reservation


def use_full(
    db: Session,
    offcut_id: int,
    order_item_id: Optional[int] = None,
    batch_id: Optional[int] = None,
    notes: Optional[str] = None,
    user_id: Optional[int] = None,
) -> OffcutUsage:
    """
    Consume a whole offcut.

    Records a FULL usage with the offcut's area and dimensions, marks it USED
    and drops every reservation on it (the supply is gone, so other pending
    claims are void).

    Raises:
        NotFoundError: If missing or soft-deleted
        ConflictError: If already USED or DISCARDED
    """
    offcut = _lock_offcut(db, offcut_id)
    _ensure_consumable(offcut)

    usage = OffcutUsage(
        offcut_id=offcut.id,
        order_item_id=order_item_id,
        batch_id=batch_id,
        used_area_mm2=offcut.effective_area_mm2,
        used_width_mm=offcut.width_mm,
        used_height_mm=offcut.height_mm,
        usage_type=OffcutUsageType.FULL.value,
        notes=notes,
        created_by_user_id=user_id,
    )
    db.add(usage)
    _set_status(offcut, OffcutStatus.USED.value)

    released = (
        db.query(OffcutReservation)
        .filter(OffcutReservation.offcut_id == offcut.id)
        .delete(synchronize_session="fetch")
    )
    db.flush()

    logger.info(
        f"Used offcut {offcut.id} in full ({released} reservation(s) released)",
        extra={"offcut_id": offcut.id, "status": offcut.status, "usage_id": usage.id},
    )
    return usage


def consumed_area(
    used_area_mm2: Optional[int] = None,
    used_width_mm: Optional[int] = None,
    used_height_mm: Optional[int] = None,
) -> Optional[int]:
    """Explicit area, else width x height when both are given, else unknown."""
    if used_area_mm2:
        return used_area_mm2
    if used_width_mm and used_height_mm:
        return used_width_mm * used_height_mm
    return None


def status_after_partial_use(current_status: str, prior_area: float, remaining_area: float) -> str:
    """
    Status an offcut takes after a partial use.

    remaining <= 0                          -> USED
    0 < remaining < discard_fraction*prior  -> DISCARDED
    otherwise                               -> unchanged
    """
    if remaining_area <= 0:
        return OffcutStatus.USED.value
    if remaining_area < prior_area * get_discard_fraction():
        return OffcutStatus.DISCARDED.value
    return current_status


def use_partial(
    db: Session,
    offcut_id: int,
    used_area_mm2: Optional[int] = None,
    used_width_mm: Optional[int] = None,
    used_height_mm: Optional[int] = None,
    order_item_id: Optional[int] = None,
    batch_id: Optional[int] = None,
    notes: Optional[str] = None,
    user_id: Optional[int] = None,
) -> OffcutUsage:
    """
    Consume part of an offcut.

    When both the consumed area and the offcut's prior area are known, the
    remaining area (never below 0) is written back and the status is derived
    from it (see status_after_partial_use). Only reservations matching the
    given order_item_id / batch_id are released; other claims survive.

    Raises:
        NotFoundError: If missing or soft-deleted
        ValidationError: If a consumed area or dimension is zero or negative
        ConflictError: If already USED or DISCARDED
    """
    for field_name, value in (
        ("used_area_mm2", used_area_mm2),
        ("used_width_mm", used_width_mm),
        ("used_height_mm", used_height_mm),
    ):
        if value is not None and value <= 0:
            raise ValidationError(f"{field_name} must be positive", field=field_name)

    offcut = _lock_offcut(db, offcut_id)
    _ensure_consumable(offcut)

    used_area = consumed_area(used_area_mm2, used_width_mm, used_height_mm)

    usage = OffcutUsage(
        offcut_id=offcut.id,
        order_item_id=order_item_id,
        batch_id=batch_id,
        used_area_mm2=used_area,
        used_width_mm=used_width_mm,
        used_height_mm=used_height_mm,
        usage_type=OffcutUsageType.PARTIAL.value,
        notes=notes,
        created_by_user_id=user_id,
    )
    db.add(usage)

    prior_area = offcut.effective_area_mm2
    if used_area and prior_area and prior_area > 0:
        remaining = max(0, prior_area - used_area)
        offcut.estimated_area_mm2 = remaining
        _set_status(offcut, status_after_partial_use(offcut.status, prior_area, remaining))
    elif used_area is None:
        logger.warning(
            f"Partial use of offcut {offcut.id} recorded without a consumed area; area unchanged",
            extra={"offcut_id": offcut.id},
        )

    release_query = db.query(OffcutReservation).filter(OffcutReservation.offcut_id == offcut.id)
    if order_item_id is not None:
        release_query = release_query.filter(OffcutReservation.order_item_id == order_item_id)
    if batch_id is not None:
        release_query = release_query.filter(OffcutReservation.batch_id == batch_id)
    released = release_query.delete(synchronize_session="fetch")
    db.flush()

    logger.info(
        f"Used offcut {offcut.id} partially: {used_area}mm2 of {prior_area}mm2 "
        f"({released} reservation(s) released)",
        extra={
            "offcut_id": offcut.id,
            "status": offcut.status,
            "remaining_area_mm2": offcut.estimated_area_mm2,
            "usage_id": usage.id,
        },
    )
    return usage


# =============================================================================
# Queries
# =============================================================================

def get_offcut(db: Session, offcut_id: int) -> Offcut:
    """
    Get an offcut with material, usages and reservations (newest first).

    Raises:
        NotFoundError: If missing or soft-deleted
    """
    offcut = (
        db.query(Offcut)
        .options(
            joinedload(Offcut.material),
            selectinload(Offcut.usages),
            selectinload(Offcut.reservations),
        )
        .filter(Offcut.id == offcut_id, Offcut.deleted_at.is_(None))
        .first()
    )
    if not offcut:
        raise NotFoundError("Offcut", offcut_id)
    return offcut


def list_offcuts(
    db: Session,
    material_category: Optional[str] = None,
    thickness_mm: Optional[int] = None,
    status: Optional[str] = None,
    condition: Optional[str] = None,
    location: Optional[str] = None,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    """
    List non-deleted offcuts, ordered by status then most recently updated.

    location and search are case-insensitive substring matches; search looks
    at notes and location label.
    """
    query = (
        db.query(Offcut)
        .options(joinedload(Offcut.material))
        .filter(Offcut.deleted_at.is_(None))
    )

    if status:
        query = query.filter(Offcut.status == status)
    if condition:
        query = query.filter(Offcut.condition == condition)
    if thickness_mm:
        query = query.filter(Offcut.thickness_mm == thickness_mm)
    if location:
        query = query.filter(Offcut.location_label.ilike(f"%{location}%"))
    if material_category:
        query = query.join(Offcut.material).filter(Material.category == material_category)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Offcut.notes.ilike(pattern), Offcut.location_label.ilike(pattern))
        )

    offcuts = query.order_by(Offcut.status.asc(), Offcut.updated_at.desc(), Offcut.id.desc()).all()
    return {"data": offcuts, "total": len(offcuts)}


def list_usages(db: Session, limit: Optional[int] = None) -> Dict[str, Any]:
    """Most recent usage records across all offcuts that are not soft-deleted."""
    usages = (
        db.query(OffcutUsage)
        .join(Offcut, OffcutUsage.offcut_id == Offcut.id)
        .filter(Offcut.deleted_at.is_(None))
        .order_by(OffcutUsage.created_at.desc(), OffcutUsage.id.desc())
        .limit(limit or settings.OFFCUT_HISTORY_LIMIT)
        .all()
    )
    return {"data": usages, "total": len(usages)}


def list_reservations(db: Session, limit: Optional[int] = None) -> Dict[str, Any]:
    """Most recent open reservations on offcuts that are not soft-deleted."""
    reservations = (
        db.query(OffcutReservation)
        .join(Offcut, OffcutReservation.offcut_id == Offcut.id)
        .filter(Offcut.deleted_at.is_(None))
        .order_by(OffcutReservation.created_at.desc(), OffcutReservation.id.desc())
        .limit(limit or settings.OFFCUT_HISTORY_LIMIT)
        .all()
    )
    return {"data": reservations, "total": len(reservations)}


def count_active_offcuts(db: Session) -> int:
    """Number of offcuts that have not been soft-deleted."""
    return db.query(Offcut).filter(Offcut.deleted_at.is_(None)).count()
