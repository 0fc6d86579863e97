import pytest

from yardops.domain_errors import RackNotFound, ValidationError
from yardops.models import AuditEvent, Rack, RackOccupancyAdjustment
from yardops.use_cases.rack_adjustments import adjust_rack_occupancy


@pytest.fixture()
def area(make):
    return make.area(make.yard())


def test_adjustment_updates_slot_rack_and_records_history(db, make, area) -> None:
    make.slot_rack(area, "A-1", capacity=10, occupied=2)

    adjustment = adjust_rack_occupancy(
        db=db,
        rack_id="A-1",
        new_occupied=7,
        reason="Physical count after winter audit",
        adjusted_by="yard.admin@example.com",
    )

    assert (adjustment.old_value, adjustment.new_value) == (2.0, 7.0)
    assert adjustment.allocation_mode == "SLOT"
    assert db.query(Rack.occupied).filter(Rack.id == "A-1").scalar() == 7
    assert db.query(AuditEvent).filter(AuditEvent.action == "rack_occupancy_adjusted").count() == 1


def test_adjustment_on_linear_rack_sets_metres(db, make, area) -> None:
    make.linear_rack(area, "L-1", capacity_meters=100.0, occupied_meters=10.0)

    adjust_rack_occupancy(db=db, rack_id="L-1", new_occupied=42.5, reason="Re-measured after pickup")

    assert db.query(Rack.occupied_meters).filter(Rack.id == "L-1").scalar() == pytest.approx(42.5)


@pytest.mark.parametrize("value", [-1, 11])
def test_adjustment_outside_capacity_is_rejected(db, make, area, value) -> None:
    make.slot_rack(area, "A-1", capacity=10, occupied=2)

    with pytest.raises(ValidationError):
        adjust_rack_occupancy(db=db, rack_id="A-1", new_occupied=value, reason="Physical count correction")

    assert db.query(Rack.occupied).filter(Rack.id == "A-1").scalar() == 2
    assert db.query(RackOccupancyAdjustment).count() == 0


def test_adjustment_requires_a_meaningful_reason(db, make, area) -> None:
    make.slot_rack(area, "A-1", capacity=10)

    with pytest.raises(ValidationError, match="at least 10 characters"):
        adjust_rack_occupancy(db=db, rack_id="A-1", new_occupied=1, reason="fix")


def test_fractional_slot_count_is_rejected(db, make, area) -> None:
    make.slot_rack(area, "A-1", capacity=10)

    with pytest.raises(ValidationError, match="whole number"):
        adjust_rack_occupancy(db=db, rack_id="A-1", new_occupied=2.5, reason="Physical count correction")


def test_adjustment_unknown_rack(db) -> None:
    with pytest.raises(RackNotFound):
        adjust_rack_occupancy(db=db, rack_id="Z-1", new_occupied=1, reason="Physical count correction")
