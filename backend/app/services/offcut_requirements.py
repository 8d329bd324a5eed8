"""
Requirement Resolver - derives what size of offcut an order item (or a batch) needs.

Single item:
    material  = item.material, else item.template.default_material
    width/height from the item
    area      = width x height x quantity when both dimensions are known,
                else template hint avg_area_mm2_per_item x quantity,
                else unknown

Batch:
    items are grouped by (material_id, thickness_mm); a group needs the
    LARGEST single-item area in it. No cross-item packing is assumed, so one
    offcut must cover the biggest item on its own.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.offcut_config import get_safety_margin
from app.exceptions import NotFoundError
from app.models.material import Material
from app.models.order import OrderItem, ProductTemplate
from app.models.production_batch import BatchItemLink, ProductionBatch
from app.services.offcut_fit import FitRequirement


@dataclass
class ItemRequirement:
    """Resolved requirement for one order item."""
    material: Material
    width_mm: Optional[int]
    height_mm: Optional[int]
    area_mm2: Optional[float]
    safety_margin: float

    @property
    def material_category(self) -> str:
        return self.material.category

    @property
    def thickness_mm(self) -> int:
        return self.material.thickness_mm

    def to_fit_requirement(self) -> FitRequirement:
        return FitRequirement(
            width_mm=self.width_mm,
            height_mm=self.height_mm,
            area_mm2=self.area_mm2,
            safety_margin=self.safety_margin,
        )


@dataclass
class BatchRequirement:
    """Worst-case requirement for one (material, thickness) group of a batch."""
    material: Material
    items: List[OrderItem] = field(default_factory=list)
    area_mm2: float = 0

    @property
    def key(self) -> Tuple[int, int]:
        return (self.material.id, self.material.thickness_mm)

    @property
    def safety_margin(self) -> float:
        return get_safety_margin(self.material.category)

    @property
    def area_with_margin(self) -> float:
        return self.area_mm2 * (1 + self.safety_margin)


def resolve_item_material(item: OrderItem) -> Optional[Material]:
    """The item's own material, else its template's default material."""
    if item.material is not None:
        return item.material
    if item.template is not None:
        return item.template.default_material
    return None


def required_area_for_item(item: OrderItem) -> Optional[float]:
    """
    Area one order item needs, or None when it cannot be derived.

    Explicit dimensions win over the template's average-area hint.
    """
    quantity = item.quantity or 0
    if item.width_mm and item.height_mm:
        return item.width_mm * item.height_mm * quantity

    if item.template is not None and item.template.material_hints:
        hint = item.template.material_hints[0]
        if hint.avg_area_mm2_per_item is not None:
            return hint.avg_area_mm2_per_item * quantity

    return None


def resolve_item_requirement(item: OrderItem) -> Optional[ItemRequirement]:
    """
    Resolve a single order item.

    Returns:
        ItemRequirement, or None when no material can be determined
    """
    material = resolve_item_material(item)
    if material is None:
        return None

    return ItemRequirement(
        material=material,
        width_mm=item.width_mm,
        height_mm=item.height_mm,
        area_mm2=required_area_for_item(item),
        safety_margin=get_safety_margin(material.category),
    )


def group_batch_requirements(items: List[OrderItem]) -> List[BatchRequirement]:
    """
    Group items by (material_id, thickness_mm), keeping first-seen order.

    Items without a resolvable material are skipped. Items with an unknown
    area join their group but do not raise its required area.
    """
    groups: Dict[Tuple[int, int], BatchRequirement] = {}

    for item in items:
        material = resolve_item_material(item)
        if material is None:
            continue

        key = (material.id, material.thickness_mm)
        group = groups.get(key)
        if group is None:
            group = BatchRequirement(material=material)
            groups[key] = group
        group.items.append(item)

        area = required_area_for_item(item) or 0
        if area > group.area_mm2:
            group.area_mm2 = area

    return list(groups.values())


# =============================================================================
# Loaders
# =============================================================================

def _order_item_options():
    return (
        joinedload(OrderItem.material),
        joinedload(OrderItem.template).joinedload(ProductTemplate.default_material),
        joinedload(OrderItem.template).selectinload(ProductTemplate.material_hints),
    )


def load_order_item(db: Session, order_item_id: int) -> OrderItem:
    """
    Load an order item with material, template and hints.

    Raises:
        NotFoundError: If the order item does not exist
    """
    item = (
        db.query(OrderItem)
        .options(*_order_item_options())
        .filter(OrderItem.id == order_item_id)
        .first()
    )
    if not item:
        raise NotFoundError("Order item", order_item_id)
    return item


def load_batch_items(db: Session, batch_id: int) -> List[OrderItem]:
    """
    Load the order items linked to a batch, in link order.

    Raises:
        NotFoundError: If the batch does not exist
    """
    batch = db.get(ProductionBatch, batch_id)
    if not batch:
        raise NotFoundError("Production batch", batch_id)

    links = (
        db.query(BatchItemLink)
        .options(
            selectinload(BatchItemLink.order_item).options(*_order_item_options())
        )
        .filter(BatchItemLink.batch_id == batch_id)
        .order_by(BatchItemLink.id)
        .all()
    )
    return [link.order_item for link in links]
