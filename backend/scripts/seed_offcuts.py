#!/usr/bin/env python3
"""
LaserShop - Offcut Demo Data Seeder

Creates a small, realistic workshop state for trying the suggestion endpoints:
- Sheet materials (plywood, MDF, acrylic)
- Offcuts of each, rectangular and irregular, in a few conditions
- Order items (with dimensions, and from a template hint)
- One production batch linking the order items

Usage:
  cd backend
  python scripts/seed_offcuts.py

Safe to run once on an empty database; run again and you get duplicates.
"""
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.db.session import SessionLocal  # noqa: E402
from app.models import (  # noqa: E402
    BatchItemLink, Material, OrderItem, ProductionBatch,
    ProductTemplate, TemplateMaterialHint, User,
)
from app.services.offcut_service import create_offcut, parse_offcut_create  # noqa: E402

MATERIALS = [
    ("Birch Plywood 3mm", "PLYWOOD", 3),
    ("MDF 6mm", "MDF", 6),
    ("Clear Acrylic 3mm", "ACRYLIC", 3),
]

# (material index, payload)
OFFCUTS = [
    (0, {"shape_type": "RECTANGLE", "width_mm": 300, "height_mm": 180, "location_label": "Rack A1"}),
    (0, {"shape_type": "RECTANGLE", "width_mm": 120, "height_mm": 90, "location_label": "Rack A1"}),
    (0, {"shape_type": "IRREGULAR", "bounding_box_width_mm": 400, "bounding_box_height_mm": 150,
         "estimated_area_mm2": 42000, "condition": "OK", "location_label": "Bin 3"}),
    (1, {"shape_type": "RECTANGLE", "width_mm": 250, "height_mm": 250, "location_label": "Rack B2"}),
    (1, {"shape_type": "RECTANGLE", "width_mm": 600, "height_mm": 90, "condition": "DAMAGED",
         "notes": "Water stain along one edge", "location_label": "Rack B2"}),
    (2, {"shape_type": "IRREGULAR", "estimated_area_mm2": 11000, "location_label": "Acrylic drawer"}),
    (2, {"shape_type": "RECTANGLE", "width_mm": 200, "height_mm": 150, "location_label": "Acrylic drawer"}),
]


def create_demo_data():
    """Create materials, offcuts, order items and a batch"""
    db = SessionLocal()

    try:
        print("Creating LaserShop offcut demo data...")

        user = db.query(User).filter(User.email == "workshop@lasershop.local").first()
        if not user:
            user = User(email="workshop@lasershop.local", first_name="Workshop", last_name="Admin", role="ADMIN")
            db.add(user)
            db.flush()

        materials = []
        for name, category, thickness in MATERIALS:
            material = Material(name=name, category=category, thickness_mm=thickness,
                                sheet_width_mm=600, sheet_height_mm=400)
            db.add(material)
            materials.append(material)
        db.flush()
        print(f"  {len(materials)} materials")

        for index, payload in OFFCUTS:
            material = materials[index]
            data = parse_offcut_create({
                "material_id": material.id,
                "thickness_mm": material.thickness_mm,
                **payload,
            })
            create_offcut(db, data, created_by_user_id=user.id)
        print(f"  {len(OFFCUTS)} offcuts")

        coaster = ProductTemplate(name="Acrylic coaster", default_material_id=materials[2].id)
        db.add(coaster)
        db.flush()
        db.add(TemplateMaterialHint(template_id=coaster.id, avg_area_mm2_per_item=10000))

        items = [
            OrderItem(title="Name plate", material_id=materials[0].id, width_mm=100, height_mm=50),
            OrderItem(title="Shelf sign", material_id=materials[1].id, quantity=2, width_mm=200, height_mm=100),
            OrderItem(title="Coaster", template_id=coaster.id, quantity=1),
        ]
        db.add_all(items)
        db.flush()
        print(f"  {len(items)} order items")

        batch = ProductionBatch(name="Friday run")
        db.add(batch)
        db.flush()
        for item in items:
            db.add(BatchItemLink(batch_id=batch.id, order_item_id=item.id))

        db.commit()
        print(f"Done. Try GET /api/v1/offcuts/suggestions?order_item_id={items[0].id}")
        print(f"     or GET /api/v1/offcuts/batch-suggestions?batch_id={batch.id}")

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    create_demo_data()
