"""
Offcut Suggestion Engine - ranks reusable offcuts for an order item or a batch.

Read-only: no locks, no writes. A suggested offcut may be taken by someone
else before it is reserved; reserve_offcut() is where that is caught.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.offcut_config import OffcutCondition, OffcutStatus
from app.core.settings import settings
from app.logging_config import get_logger
from app.models.material import Material
from app.models.offcut import Offcut
from app.services.offcut_fit import FitCandidate, score_fit
from app.services.offcut_requirements import (
    BatchRequirement,
    group_batch_requirements,
    load_batch_items,
    load_order_item,
    resolve_item_requirement,
)

logger = get_logger(__name__)

FIT_BATCH_AREA = "Area likely sufficient for batch items"


@dataclass
class OffcutSuggestion:
    offcut_id: int
    material_id: int
    thickness_mm: int
    width_mm: Optional[int]
    height_mm: Optional[int]
    estimated_area_mm2: Optional[int]
    location_label: Optional[str]
    condition: str
    status: str
    fit_reason: str
    score: float

    @classmethod
    def from_offcut(cls, offcut: Offcut, fit_reason: str, score: float) -> "OffcutSuggestion":
        return cls(
            offcut_id=offcut.id,
            material_id=offcut.material_id,
            thickness_mm=offcut.thickness_mm,
            width_mm=offcut.effective_width_mm,
            height_mm=offcut.effective_height_mm,
            estimated_area_mm2=offcut.effective_area_mm2,
            location_label=offcut.location_label,
            condition=offcut.condition,
            status=offcut.status,
            fit_reason=fit_reason,
            score=score,
        )


@dataclass
class BatchSuggestionGroup:
    material_id: int
    material_name: str
    thickness_mm: int
    suggestions: List[OffcutSuggestion] = field(default_factory=list)


def _candidate_query(db: Session):
    """Live, AVAILABLE, not DAMAGED offcuts."""
    return (
        db.query(Offcut)
        .filter(
            Offcut.deleted_at.is_(None),
            Offcut.status == OffcutStatus.AVAILABLE.value,
            Offcut.condition != OffcutCondition.DAMAGED.value,
        )
    )


def suggestions_for_order_item(db: Session, order_item_id: int) -> List[OffcutSuggestion]:
    """
    Rank offcuts that could be used for one order item.

    Candidates share the item's material category and thickness. Each is
    scored by score_fit(); those matching no fit class are dropped.

    Returns:
        Up to OFFCUT_SUGGESTION_LIMIT suggestions, highest score first.
        Empty when the item's material cannot be resolved.

    Raises:
        NotFoundError: If the order item does not exist
    """
    item = load_order_item(db, order_item_id)
    requirement = resolve_item_requirement(item)
    if requirement is None:
        logger.info(
            f"No material resolvable for order item {order_item_id}; no suggestions",
            extra={"order_item_id": order_item_id},
        )
        return []

    candidates = (
        _candidate_query(db)
        .join(Offcut.material)
        .filter(
            Offcut.thickness_mm == requirement.thickness_mm,
            Material.category == requirement.material_category,
        )
        .all()
    )

    fit_requirement = requirement.to_fit_requirement()
    suggestions = []
    for offcut in candidates:
        result = score_fit(fit_requirement, FitCandidate.from_offcut(offcut))
        if result is None:
            continue
        suggestions.append(OffcutSuggestion.from_offcut(offcut, result.fit_reason, result.score))

    suggestions.sort(key=lambda s: s.score, reverse=True)
    suggestions = suggestions[: settings.OFFCUT_SUGGESTION_LIMIT]

    logger.debug(
        f"Order item {order_item_id}: {len(suggestions)} of {len(candidates)} candidates suggested",
        extra={"order_item_id": order_item_id},
    )
    return suggestions


def _suggest_for_group(db: Session, group: BatchRequirement) -> List[OffcutSuggestion]:
    threshold = group.area_with_margin

    candidates = (
        _candidate_query(db)
        .filter(
            Offcut.material_id == group.material.id,
            Offcut.thickness_mm == group.material.thickness_mm,
        )
        .all()
    )

    suggestions = []
    for offcut in candidates:
        area = offcut.effective_area_mm2
        if not area or area < threshold:
            continue
        suggestions.append(OffcutSuggestion.from_offcut(offcut, FIT_BATCH_AREA, area))

    # Smallest sufficient offcut first
    suggestions.sort(key=lambda s: s.score)
    return suggestions[: settings.OFFCUT_SUGGESTION_LIMIT]


def suggestions_for_batch(db: Session, batch_id: int) -> List[BatchSuggestionGroup]:
    """
    Rank offcuts for each (material, thickness) group in a production batch.

    A group needs an offcut covering its largest single item plus the material
    safety margin. Groups with no known area, and groups with no candidates,
    are left out.

    Raises:
        NotFoundError: If the batch does not exist
    """
    items = load_batch_items(db, batch_id)

    groups = []
    for requirement in group_batch_requirements(items):
        if requirement.area_mm2 <= 0:
            continue
        suggestions = _suggest_for_group(db, requirement)
        if not suggestions:
            continue
        groups.append(
            BatchSuggestionGroup(
                material_id=requirement.material.id,
                material_name=requirement.material.name,
                thickness_mm=requirement.material.thickness_mm,
                suggestions=suggestions,
            )
        )

    logger.debug(
        f"Batch {batch_id}: {len(groups)} group(s) with suggestions from {len(items)} item(s)",
        extra={"batch_id": batch_id},
    )
    return groups
