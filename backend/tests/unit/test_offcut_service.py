"""
Unit Tests for the Offcut Service

Tests the offcut lifecycle:
1. Create (shape validation, defaults)
2. Update (patch semantics)
3. Soft delete
4. Reserve / use full / use partial, including the discard threshold
5. Listing and history
"""
import pytest

from app.core.offcut_config import get_allowed_offcut_transitions, is_valid_offcut_transition
from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.offcut import OffcutReservation, OffcutUsage
from app.schemas.offcut import OffcutUpdate
from app.services.offcut_service import (
    consumed_area,
    count_active_offcuts,
    create_offcut,
    get_offcut,
    list_offcuts,
    list_reservations,
    list_usages,
    parse_offcut_create,
    reserve_offcut,
    soft_delete_offcut,
    status_after_partial_use,
    update_offcut,
    use_full,
    use_partial,
)
from tests.factories import (
    create_test_material,
    create_test_offcut,
    create_test_order_item,
    create_test_user,
)


# ============================================================================
# Create
# ============================================================================

class TestCreateOffcut:

    @pytest.mark.unit
    def test_create_rectangle_defaults(self, db_session):
        material = create_test_material(db_session)
        data = parse_offcut_create({
            "material_id": material.id,
            "thickness_mm": 3,
            "shape_type": "RECTANGLE",
            "width_mm": 300,
            "height_mm": 200,
        })

        offcut = create_offcut(db_session, data)

        assert offcut.id is not None
        assert offcut.status == "AVAILABLE"
        assert offcut.condition == "GOOD"
        assert offcut.quantity == 1
        assert offcut.source == "MANUAL"
        assert offcut.effective_area_mm2 == 60000

    @pytest.mark.unit
    def test_create_irregular_with_area_only(self, db_session):
        material = create_test_material(db_session)
        data = parse_offcut_create({
            "material_id": material.id,
            "thickness_mm": 3,
            "shape_type": "IRREGULAR",
            "estimated_area_mm2": 4200,
            "condition": "OK",
        })

        offcut = create_offcut(db_session, data, created_by_user_id=None)

        assert offcut.shape_type == "IRREGULAR"
        assert offcut.estimated_area_mm2 == 4200
        assert offcut.condition == "OK"

    @pytest.mark.unit
    def test_create_irregular_with_bounding_box(self, db_session):
        material = create_test_material(db_session)
        data = parse_offcut_create({
            "material_id": material.id,
            "thickness_mm": 3,
            "shape_type": "IRREGULAR",
            "bounding_box_width_mm": 100,
            "bounding_box_height_mm": 40,
        })

        offcut = create_offcut(db_session, data)

        assert offcut.effective_width_mm == 100
        assert offcut.effective_area_mm2 == 4000

    @pytest.mark.unit
    def test_rectangle_without_height_rejected(self):
        with pytest.raises(ValidationError):
            parse_offcut_create({
                "material_id": 1,
                "thickness_mm": 3,
                "shape_type": "RECTANGLE",
                "width_mm": 300,
            })

    @pytest.mark.unit
    def test_irregular_without_area_or_box_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_offcut_create({
                "material_id": 1,
                "thickness_mm": 3,
                "shape_type": "IRREGULAR",
                "bounding_box_width_mm": 100,
            })
        assert "bounding box" in exc_info.value.message

    @pytest.mark.unit
    def test_unknown_shape_rejected(self):
        with pytest.raises(ValidationError):
            parse_offcut_create({"material_id": 1, "thickness_mm": 3, "shape_type": "CIRCLE"})

    @pytest.mark.unit
    def test_unknown_material(self, db_session):
        data = parse_offcut_create({
            "material_id": 99999,
            "thickness_mm": 3,
            "shape_type": "RECTANGLE",
            "width_mm": 10,
            "height_mm": 10,
        })
        with pytest.raises(NotFoundError):
            create_offcut(db_session, data)


# ============================================================================
# Update / delete
# ============================================================================

class TestUpdateOffcut:

    @pytest.mark.unit
    def test_only_present_fields_change(self, db_session):
        offcut = create_test_offcut(db_session, notes="left rack", location_label="A1")

        update_offcut(db_session, offcut.id, OffcutUpdate(location_label="B2"))

        assert offcut.location_label == "B2"
        assert offcut.notes == "left rack"
        assert offcut.width_mm == 200

    @pytest.mark.unit
    def test_explicit_null_clears(self, db_session):
        offcut = create_test_offcut(db_session, notes="scratched corner")

        update_offcut(db_session, offcut.id, OffcutUpdate(notes=None))

        assert offcut.notes is None

    @pytest.mark.unit
    def test_clearing_rectangle_width_rejected(self, db_session):
        offcut = create_test_offcut(db_session)

        with pytest.raises(ValidationError):
            update_offcut(db_session, offcut.id, OffcutUpdate(width_mm=None))

    @pytest.mark.unit
    def test_clearing_required_column_rejected(self, db_session):
        offcut = create_test_offcut(db_session)

        with pytest.raises(ValidationError):
            update_offcut(db_session, offcut.id, OffcutUpdate(thickness_mm=None))

    @pytest.mark.unit
    def test_update_deleted_offcut(self, db_session):
        offcut = create_test_offcut(db_session)
        soft_delete_offcut(db_session, offcut.id)

        with pytest.raises(NotFoundError):
            update_offcut(db_session, offcut.id, OffcutUpdate(notes="x"))


class TestSoftDelete:

    @pytest.mark.unit
    def test_soft_delete_marks_discarded(self, db_session):
        offcut = create_test_offcut(db_session)

        soft_delete_offcut(db_session, offcut.id)

        assert offcut.status == "DISCARDED"
        assert offcut.is_deleted
        assert count_active_offcuts(db_session) == 0

    @pytest.mark.unit
    def test_second_delete_not_found(self, db_session):
        offcut = create_test_offcut(db_session)
        soft_delete_offcut(db_session, offcut.id)

        with pytest.raises(NotFoundError):
            soft_delete_offcut(db_session, offcut.id)

    @pytest.mark.unit
    def test_deleted_offcut_not_gettable(self, db_session):
        offcut = create_test_offcut(db_session)
        soft_delete_offcut(db_session, offcut.id)

        with pytest.raises(NotFoundError):
            get_offcut(db_session, offcut.id)

    @pytest.mark.unit
    def test_soft_delete_drops_reservations_and_history(self, db_session):
        user = create_test_user(db_session)
        offcut = create_test_offcut(db_session, estimated_area_mm2=10000)
        use_partial(db_session, offcut.id, used_area_mm2=500)
        reserve_offcut(db_session, offcut.id, user_id=user.id)

        soft_delete_offcut(db_session, offcut.id)

        assert db_session.query(OffcutReservation).filter_by(offcut_id=offcut.id).count() == 0
        assert list_reservations(db_session)["data"] == []
        assert list_usages(db_session)["data"] == []
        assert db_session.query(OffcutUsage).filter_by(offcut_id=offcut.id).count() == 1


# ============================================================================
# Lifecycle
# ============================================================================

class TestReserve:

    @pytest.mark.unit
    def test_reserve_available(self, db_session):
        user = create_test_user(db_session)
        offcut = create_test_offcut(db_session)
        item = create_test_order_item(db_session, material=offcut.material)

        reservation = reserve_offcut(db_session, offcut.id, user_id=user.id, order_item_id=item.id)

        assert reservation.id is not None
        assert reservation.order_item_id == item.id
        assert offcut.status == "RESERVED"

    @pytest.mark.unit
    def test_reserve_twice_conflicts(self, db_session):
        user = create_test_user(db_session)
        offcut = create_test_offcut(db_session)
        reserve_offcut(db_session, offcut.id, user_id=user.id)

        with pytest.raises(ConflictError) as exc_info:
            reserve_offcut(db_session, offcut.id, user_id=user.id)

        assert exc_info.value.details["current_state"] == "RESERVED"
        assert exc_info.value.details["allowed_states"] == ["AVAILABLE"]

    @pytest.mark.unit
    def test_reserve_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            reserve_offcut(db_session, 12345, user_id=1)


class TestUseFull:

    @pytest.mark.unit
    def test_use_full_records_usage_and_releases_all_reservations(self, db_session):
        user = create_test_user(db_session)
        offcut = create_test_offcut(db_session, width_mm=300, height_mm=100)
        reserve_offcut(db_session, offcut.id, user_id=user.id)

        usage = use_full(db_session, offcut.id, notes="cut coasters", user_id=user.id)

        assert usage.usage_type == "FULL"
        assert usage.used_area_mm2 == 30000
        assert usage.used_width_mm == 300
        assert offcut.status == "USED"
        assert db_session.query(OffcutReservation).filter_by(offcut_id=offcut.id).count() == 0

    @pytest.mark.unit
    def test_use_after_used_conflicts(self, db_session):
        offcut = create_test_offcut(db_session)
        use_full(db_session, offcut.id)

        with pytest.raises(ConflictError):
            use_full(db_session, offcut.id)
        with pytest.raises(ConflictError):
            use_partial(db_session, offcut.id, used_area_mm2=10)
        with pytest.raises(ConflictError):
            reserve_offcut(db_session, offcut.id, user_id=1)


class TestUsePartial:

    @pytest.mark.unit
    def test_sliver_left_is_discarded(self, db_session):
        offcut = create_test_offcut(db_session, width_mm=None, height_mm=None,
                                    shape_type="IRREGULAR", estimated_area_mm2=1000)

        use_partial(db_session, offcut.id, used_area_mm2=950)

        assert offcut.estimated_area_mm2 == 50
        assert offcut.status == "DISCARDED"

    @pytest.mark.unit
    def test_everything_consumed_is_used(self, db_session):
        offcut = create_test_offcut(db_session, width_mm=None, height_mm=None,
                                    shape_type="IRREGULAR", estimated_area_mm2=1000)

        use_partial(db_session, offcut.id, used_area_mm2=1000)

        assert offcut.estimated_area_mm2 == 0
        assert offcut.status == "USED"

    @pytest.mark.unit
    def test_overuse_never_goes_negative(self, db_session):
        offcut = create_test_offcut(db_session, estimated_area_mm2=1000)

        use_partial(db_session, offcut.id, used_area_mm2=5000)

        assert offcut.estimated_area_mm2 == 0
        assert offcut.status == "USED"

    @pytest.mark.unit
    @pytest.mark.parametrize("used", [
        {"used_area_mm2": -500},
        {"used_area_mm2": 0},
        {"used_width_mm": -10, "used_height_mm": 20},
        {"used_width_mm": 10, "used_height_mm": 0},
    ])
    def test_non_positive_use_rejected(self, db_session, used):
        offcut = create_test_offcut(db_session, estimated_area_mm2=1000)

        with pytest.raises(ValidationError):
            use_partial(db_session, offcut.id, **used)

        assert offcut.estimated_area_mm2 == 1000
        assert offcut.status == "AVAILABLE"
        assert db_session.query(OffcutUsage).filter_by(offcut_id=offcut.id).count() == 0

    @pytest.mark.unit
    def test_plenty_left_keeps_status(self, db_session):
        user = create_test_user(db_session)
        offcut = create_test_offcut(db_session, width_mm=100, height_mm=100)
        reserve_offcut(db_session, offcut.id, user_id=user.id)

        use_partial(db_session, offcut.id, used_width_mm=50, used_height_mm=100)

        assert offcut.estimated_area_mm2 == 5000
        assert offcut.status == "RESERVED"

    @pytest.mark.unit
    def test_exactly_at_threshold_keeps_status(self, db_session):
        offcut = create_test_offcut(db_session, estimated_area_mm2=1000)

        use_partial(db_session, offcut.id, used_area_mm2=850)

        assert offcut.estimated_area_mm2 == 150
        assert offcut.status == "AVAILABLE"

    @pytest.mark.unit
    def test_unknown_consumed_area_leaves_area_unchanged(self, db_session):
        offcut = create_test_offcut(db_session, estimated_area_mm2=1000)

        usage = use_partial(db_session, offcut.id, used_width_mm=10)

        assert usage.used_area_mm2 is None
        assert offcut.estimated_area_mm2 == 1000
        assert offcut.status == "AVAILABLE"

    @pytest.mark.unit
    def test_releases_only_matching_reservations(self, db_session):
        user = create_test_user(db_session)
        offcut = create_test_offcut(db_session, estimated_area_mm2=100000)
        item_a = create_test_order_item(db_session, material=offcut.material)
        item_b = create_test_order_item(db_session, material=offcut.material)
        db_session.add_all([
            OffcutReservation(offcut_id=offcut.id, order_item_id=item_a.id, reserved_by_user_id=user.id),
            OffcutReservation(offcut_id=offcut.id, order_item_id=item_b.id, reserved_by_user_id=user.id),
        ])
        offcut.status = "RESERVED"
        db_session.flush()

        use_partial(db_session, offcut.id, used_area_mm2=1000, order_item_id=item_a.id)

        remaining = db_session.query(OffcutReservation).filter_by(offcut_id=offcut.id).all()
        assert [r.order_item_id for r in remaining] == [item_b.id]

    @pytest.mark.unit
    def test_usage_rows_accumulate(self, db_session):
        offcut = create_test_offcut(db_session, estimated_area_mm2=10000)

        use_partial(db_session, offcut.id, used_area_mm2=1000)
        use_partial(db_session, offcut.id, used_area_mm2=1000)

        assert offcut.estimated_area_mm2 == 8000
        assert db_session.query(OffcutUsage).filter_by(offcut_id=offcut.id).count() == 2


class TestPartialUseHelpers:

    @pytest.mark.unit
    @pytest.mark.parametrize("remaining,expected", [
        (0, "USED"),
        (1, "DISCARDED"),
        (149, "DISCARDED"),
        (150, "RESERVED"),
        (900, "RESERVED"),
    ])
    def test_status_after_partial_use(self, remaining, expected):
        assert status_after_partial_use("RESERVED", 1000, remaining) == expected

    @pytest.mark.unit
    def test_consumed_area(self):
        assert consumed_area(used_area_mm2=500, used_width_mm=10, used_height_mm=10) == 500
        assert consumed_area(used_width_mm=10, used_height_mm=20) == 200
        assert consumed_area(used_width_mm=10) is None

    @pytest.mark.unit
    def test_transition_table(self):
        assert is_valid_offcut_transition("AVAILABLE", "RESERVED")
        assert is_valid_offcut_transition("USED", "DISCARDED")
        assert is_valid_offcut_transition("DISCARDED", "DISCARDED")
        assert not is_valid_offcut_transition("RESERVED", "AVAILABLE")
        assert not is_valid_offcut_transition("DISCARDED", "AVAILABLE")
        assert get_allowed_offcut_transitions("RESERVED") == ["DISCARDED", "USED"]
        assert get_allowed_offcut_transitions("DISCARDED") == []


# ============================================================================
# Queries
# ============================================================================

class TestQueries:

    @pytest.mark.unit
    def test_list_filters(self, db_session):
        plywood = create_test_material(db_session, category="PLYWOOD", thickness_mm=3)
        acrylic = create_test_material(db_session, category="ACRYLIC", thickness_mm=5)
        a = create_test_offcut(db_session, material=plywood, location_label="Rack A", notes="birch")
        create_test_offcut(db_session, material=acrylic, location_label="Rack B", condition="DAMAGED")
        gone = create_test_offcut(db_session, material=plywood, location_label="Rack A")
        soft_delete_offcut(db_session, gone.id)

        assert list_offcuts(db_session)["total"] == 2
        assert [o.id for o in list_offcuts(db_session, material_category="PLYWOOD")["data"]] == [a.id]
        assert list_offcuts(db_session, thickness_mm=5)["total"] == 1
        assert list_offcuts(db_session, condition="DAMAGED")["total"] == 1
        assert [o.id for o in list_offcuts(db_session, location="rack a")["data"]] == [a.id]
        assert [o.id for o in list_offcuts(db_session, search="BIRCH")["data"]] == [a.id]

    @pytest.mark.unit
    def test_list_ordered_by_status(self, db_session):
        used = create_test_offcut(db_session, status="USED")
        available = create_test_offcut(db_session)
        reserved = create_test_offcut(db_session, status="RESERVED")

        ids = [o.id for o in list_offcuts(db_session)["data"]]

        assert ids == [available.id, reserved.id, used.id]

    @pytest.mark.unit
    def test_get_includes_history(self, db_session):
        user = create_test_user(db_session)
        offcut = create_test_offcut(db_session, estimated_area_mm2=10000)
        reserve_offcut(db_session, offcut.id, user_id=user.id)
        use_partial(db_session, offcut.id, used_area_mm2=500)
        db_session.commit()
        db_session.expire_all()

        detail = get_offcut(db_session, offcut.id)

        assert len(detail.usages) == 1
        assert len(detail.reservations) == 0
        assert detail.material is not None

    @pytest.mark.unit
    def test_history_lists(self, db_session):
        user = create_test_user(db_session)
        first = create_test_offcut(db_session)
        second = create_test_offcut(db_session)
        reserve_offcut(db_session, first.id, user_id=user.id)
        reserve_offcut(db_session, second.id, user_id=user.id)
        use_full(db_session, first.id)

        assert list_usages(db_session)["total"] == 1
        reservations = list_reservations(db_session)["data"]
        assert [r.offcut_id for r in reservations] == [second.id]
        assert list_reservations(db_session, limit=1)["total"] == 1
