"""
Schemas for offcut inventory, lifecycle operations and fit suggestions.
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from app.core.offcut_config import (
    MaterialCategory,
    OffcutCondition,
    OffcutShapeType,
    OffcutSource,
    OffcutStatus,
)


# ============================================================================
# Create (tagged by shape_type)
# ============================================================================

class _OffcutCreateBase(BaseModel):
    """Fields shared by every offcut shape."""
    material_id: int = Field(..., description="Material the offcut is cut from")
    thickness_mm: int = Field(..., ge=1)
    estimated_area_mm2: Optional[int] = Field(None, ge=1)
    quantity: int = Field(default=1, ge=1)
    location_label: Optional[str] = Field(None, max_length=100)
    condition: OffcutCondition = OffcutCondition.GOOD
    source: OffcutSource = OffcutSource.MANUAL
    notes: Optional[str] = None


class RectangleOffcutCreate(_OffcutCreateBase):
    """Rectangular offcut: width and height are required."""
    shape_type: Literal["RECTANGLE"]
    width_mm: int = Field(..., ge=1)
    height_mm: int = Field(..., ge=1)


class IrregularOffcutCreate(_OffcutCreateBase):
    """Irregular offcut: an area estimate or a full bounding box is required."""
    shape_type: Literal["IRREGULAR"]
    bounding_box_width_mm: Optional[int] = Field(None, ge=1)
    bounding_box_height_mm: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def require_area_or_bounding_box(self):
        has_box = bool(self.bounding_box_width_mm and self.bounding_box_height_mm)
        if not self.estimated_area_mm2 and not has_box:
            raise ValueError("Estimated area or bounding box is required for irregular offcuts")
        return self


OffcutCreate = Annotated[
    Union[RectangleOffcutCreate, IrregularOffcutCreate],
    Field(discriminator="shape_type"),
]


# ============================================================================
# Update (patch semantics: only fields present in the payload are applied)
# ============================================================================

class OffcutUpdate(BaseModel):
    """
    Partial update. Omitted fields are left unchanged; an explicit null clears
    the column. Status is not patchable; it moves only through reserve/use/delete.
    """
    thickness_mm: Optional[int] = Field(None, ge=1)
    width_mm: Optional[int] = Field(None, ge=1)
    height_mm: Optional[int] = Field(None, ge=1)
    bounding_box_width_mm: Optional[int] = Field(None, ge=1)
    bounding_box_height_mm: Optional[int] = Field(None, ge=1)
    estimated_area_mm2: Optional[int] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=1)
    location_label: Optional[str] = Field(None, max_length=100)
    condition: Optional[OffcutCondition] = None
    notes: Optional[str] = None


# ============================================================================
# Lifecycle operations
# ============================================================================

class OffcutReserveRequest(BaseModel):
    """Request to place a hold on an offcut."""
    order_item_id: Optional[int] = Field(None, description="Order item the offcut is held for")
    batch_id: Optional[int] = Field(None, description="Production batch the offcut is held for")


class OffcutUseFullRequest(OffcutReserveRequest):
    """Request to consume a whole offcut."""
    notes: Optional[str] = None


class OffcutUsePartialRequest(OffcutUseFullRequest):
    """
    Request to consume part of an offcut.

    Consumed area is used_area_mm2 when given, else used_width_mm x used_height_mm.
    """
    used_area_mm2: Optional[int] = Field(None, ge=1)
    used_width_mm: Optional[int] = Field(None, ge=1)
    used_height_mm: Optional[int] = Field(None, ge=1)


# ============================================================================
# Responses
# ============================================================================

class MaterialSummary(BaseModel):
    id: int
    name: str
    category: MaterialCategory
    thickness_mm: int

    class Config:
        from_attributes = True


class OffcutReservationResponse(BaseModel):
    id: int
    offcut_id: int
    order_item_id: Optional[int] = None
    batch_id: Optional[int] = None
    reserved_by_user_id: int
    reserved_until: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OffcutUsageResponse(BaseModel):
    id: int
    offcut_id: int
    order_item_id: Optional[int] = None
    batch_id: Optional[int] = None
    usage_type: str
    used_area_mm2: Optional[int] = None
    used_width_mm: Optional[int] = None
    used_height_mm: Optional[int] = None
    notes: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OffcutResponse(BaseModel):
    """Offcut as listed."""
    id: int
    material_id: int
    material: Optional[MaterialSummary] = None
    thickness_mm: int
    shape_type: OffcutShapeType
    width_mm: Optional[int] = None
    height_mm: Optional[int] = None
    bounding_box_width_mm: Optional[int] = None
    bounding_box_height_mm: Optional[int] = None
    estimated_area_mm2: Optional[int] = None
    effective_area_mm2: Optional[int] = None
    quantity: int
    location_label: Optional[str] = None
    condition: OffcutCondition
    status: OffcutStatus
    source: OffcutSource
    notes: Optional[str] = None
    created_by_user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OffcutDetailResponse(OffcutResponse):
    """Offcut with its consumption history and open holds."""
    usages: List[OffcutUsageResponse] = []
    reservations: List[OffcutReservationResponse] = []


class OffcutListResponse(BaseModel):
    data: List[OffcutResponse]
    total: int


class OffcutUsageListResponse(BaseModel):
    data: List[OffcutUsageResponse]
    total: int


class OffcutReservationListResponse(BaseModel):
    data: List[OffcutReservationResponse]
    total: int


class OffcutDeleteResponse(BaseModel):
    id: int


class OffcutSuggestionResponse(BaseModel):
    """One ranked candidate offcut."""
    offcut_id: int
    material_id: int
    thickness_mm: int
    width_mm: Optional[int] = None
    height_mm: Optional[int] = None
    estimated_area_mm2: Optional[int] = None
    location_label: Optional[str] = None
    condition: OffcutCondition
    status: OffcutStatus
    fit_reason: str
    score: float

    class Config:
        from_attributes = True


class BatchSuggestionGroupResponse(BaseModel):
    """Candidates for one (material, thickness) group of a batch."""
    material_id: int
    material_name: str
    thickness_mm: int
    suggestions: List[OffcutSuggestionResponse]

    class Config:
        from_attributes = True
