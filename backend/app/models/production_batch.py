"""
Production batch models

A batch groups order items cut together in one session.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class ProductionBatch(Base):
    """Production Batch model - matches production_batches table"""
    __tablename__ = "production_batches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), default="PLANNED", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    item_links = relationship(
        "BatchItemLink",
        back_populates="batch",
        order_by="BatchItemLink.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<ProductionBatch {self.name} ({self.status})>"


class BatchItemLink(Base):
    """Junction table between batches and order items"""
    __tablename__ = "batch_item_links"
    __table_args__ = (
        UniqueConstraint("batch_id", "order_item_id", name="uq_batch_item_links_batch_item"),
    )

    id = Column(Integer, primary_key=True, index=True)
    batch_id = Column(Integer, ForeignKey("production_batches.id"), nullable=False)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    batch = relationship("ProductionBatch", back_populates="item_links")
    order_item = relationship("OrderItem")
