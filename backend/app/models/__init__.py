"""Database models"""
from app.models.user import User
from app.models.material import Material
from app.models.order import OrderItem, ProductTemplate, TemplateMaterialHint
from app.models.production_batch import ProductionBatch, BatchItemLink
from app.models.offcut import Offcut, OffcutReservation, OffcutUsage

__all__ = [
    # Users
    "User",
    # Materials
    "Material",
    # Orders
    "OrderItem",
    "ProductTemplate",
    "TemplateMaterialHint",
    # Production
    "ProductionBatch",
    "BatchItemLink",
    # Offcuts
    "Offcut",
    "OffcutReservation",
    "OffcutUsage",
]
