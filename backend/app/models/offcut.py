"""
Offcut models

Tracks reusable material remnants, the holds placed on them, and the
immutable audit trail of their consumption.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.offcut_config import (
    OffcutCondition,
    OffcutShapeType,
    OffcutSource,
    OffcutStatus,
)
from app.db.base import Base


class Offcut(Base):
    """Offcut model - matches offcuts table"""
    __tablename__ = "offcuts"
    __table_args__ = (
        Index("ix_offcuts_material_thickness_status", "material_id", "thickness_mm", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Material
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    thickness_mm = Column(Integer, nullable=False)

    # Shape: RECTANGLE uses width/height, IRREGULAR uses bounding box and/or area
    shape_type = Column(String(20), default=OffcutShapeType.RECTANGLE.value, nullable=False)
    width_mm = Column(Integer, nullable=True)
    height_mm = Column(Integer, nullable=True)
    bounding_box_width_mm = Column(Integer, nullable=True)
    bounding_box_height_mm = Column(Integer, nullable=True)
    estimated_area_mm2 = Column(Integer, nullable=True)  # decremented by partial use

    quantity = Column(Integer, default=1, nullable=False)
    location_label = Column(String(100), nullable=True, index=True)
    condition = Column(String(20), default=OffcutCondition.GOOD.value, nullable=False)
    status = Column(String(20), default=OffcutStatus.AVAILABLE.value, nullable=False, index=True)
    source = Column(String(30), default=OffcutSource.MANUAL.value, nullable=False)
    notes = Column(Text, nullable=True)

    # Metadata
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)  # soft-delete marker, irreversible

    # Relationships
    material = relationship("Material", back_populates="offcuts")
    created_by_user = relationship("User")
    usages = relationship(
        "OffcutUsage",
        back_populates="offcut",
        order_by="[OffcutUsage.created_at.desc(), OffcutUsage.id.desc()]",
    )
    reservations = relationship(
        "OffcutReservation",
        back_populates="offcut",
        order_by="[OffcutReservation.created_at.desc(), OffcutReservation.id.desc()]",
    )

    def __repr__(self):
        return f"<Offcut {self.id}: {self.shape_type} {self.effective_area_mm2}mm2 ({self.status})>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def effective_width_mm(self):
        """Explicit width, else bounding-box width"""
        return self.width_mm or self.bounding_box_width_mm or None

    @property
    def effective_height_mm(self):
        """Explicit height, else bounding-box height"""
        return self.height_mm or self.bounding_box_height_mm or None

    @property
    def effective_area_mm2(self):
        """
        Usable area: the tracked estimate when present, else width x height.

        An estimate of 0 is a real value (fully consumed), so only None falls through.
        """
        if self.estimated_area_mm2 is not None:
            return self.estimated_area_mm2
        width, height = self.effective_width_mm, self.effective_height_mm
        if width and height:
            return width * height
        return None


class OffcutReservation(Base):
    """Soft hold on an offcut pending confirmed consumption"""
    __tablename__ = "offcut_reservations"

    id = Column(Integer, primary_key=True, index=True)
    offcut_id = Column(Integer, ForeignKey("offcuts.id"), nullable=False, index=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=True, index=True)
    batch_id = Column(Integer, ForeignKey("production_batches.id"), nullable=True, index=True)
    reserved_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reserved_until = Column(DateTime, nullable=True)  # informational, not enforced
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    offcut = relationship("Offcut", back_populates="reservations")
    order_item = relationship("OrderItem")
    batch = relationship("ProductionBatch")
    reserved_by_user = relationship("User")

    def __repr__(self):
        return f"<OffcutReservation {self.id}: offcut {self.offcut_id}>"


class OffcutUsage(Base):
    """
    Immutable consumption record.

    Rows are only ever inserted; nothing updates or deletes them.
    """
    __tablename__ = "offcut_usages"

    id = Column(Integer, primary_key=True, index=True)
    offcut_id = Column(Integer, ForeignKey("offcuts.id"), nullable=False, index=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=True, index=True)
    batch_id = Column(Integer, ForeignKey("production_batches.id"), nullable=True, index=True)

    usage_type = Column(String(20), nullable=False)  # FULL, PARTIAL
    used_area_mm2 = Column(Integer, nullable=True)
    used_width_mm = Column(Integer, nullable=True)
    used_height_mm = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    offcut = relationship("Offcut", back_populates="usages")
    order_item = relationship("OrderItem")
    batch = relationship("ProductionBatch")
    created_by_user = relationship("User")

    def __repr__(self):
        return f"<OffcutUsage {self.usage_type}: offcut {self.offcut_id} ({self.used_area_mm2}mm2)>"
