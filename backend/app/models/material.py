"""
Material model

Sheet stock definitions (category + thickness). Owned by the materials module
of the shop application; offcuts and order items reference it.
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.offcut_config import MaterialCategory
from app.db.base import Base


class Material(Base):
    """Material model - matches materials table"""
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(30), default=MaterialCategory.OTHER.value, nullable=False, index=True)
    thickness_mm = Column(Integer, nullable=False)

    # Full sheet size, informational
    sheet_width_mm = Column(Integer, nullable=True)
    sheet_height_mm = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    offcuts = relationship("Offcut", back_populates="material")

    def __repr__(self):
        return f"<Material {self.name} ({self.category} {self.thickness_mm}mm)>"
