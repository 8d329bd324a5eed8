"""
Order item and product template models

Read-only collaborators for the offcut suggestion engine: an order item
carries (or inherits from its template) the material and the required size.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class ProductTemplate(Base):
    """Product Template model - matches product_templates table"""
    __tablename__ = "product_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    default_material_id = Column(Integer, ForeignKey("materials.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    default_material = relationship("Material")
    material_hints = relationship(
        "TemplateMaterialHint",
        back_populates="template",
        order_by="TemplateMaterialHint.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<ProductTemplate {self.name}>"


class TemplateMaterialHint(Base):
    """Average material consumption per produced item, used when an item has no explicit size"""
    __tablename__ = "template_material_hints"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("product_templates.id"), nullable=False, index=True)
    avg_area_mm2_per_item = Column(Float, nullable=True)
    avg_sheet_fraction_per_item = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    template = relationship("ProductTemplate", back_populates="material_hints")


class OrderItem(Base):
    """Order Item model - matches order_items table"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=True)
    template_id = Column(Integer, ForeignKey("product_templates.id"), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    width_mm = Column(Integer, nullable=True)
    height_mm = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    material = relationship("Material")
    template = relationship("ProductTemplate")

    def __repr__(self):
        return f"<OrderItem {self.id}: {self.title} x{self.quantity}>"
