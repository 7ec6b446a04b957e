from decimal import Decimal

import pytest
from sqlalchemy import delete, false, update

from conftest import actor, dt, make_user, make_vehicle
from models import db
from models.booking_guard import VehicleBookingGuard
from models.reservation import Reservation
from services import conflicts, lifecycle, reservation_store, reservations
from services.errors import (
    Forbidden,
    InvalidRange,
    InvalidTransition,
    NotFound,
    SlotConflict,
    ValidationError,
    VehicleUnavailable,
)
from utils.serializers import reservation_to_dict


@pytest.fixture()
def setup(ctx):
    owner = make_user("owner@example.com")
    other = make_user("other@example.com")
    admin = make_user("admin@example.com", admin=True)
    vehicle = make_vehicle()
    return owner, other, admin, vehicle


def _book(user, vehicle, start, end, **extra):
    return reservations.create_reservation(actor(user), vehicle.id, dt(start), dt(end), **extra)


def test_create_reservation_prices_and_defaults_to_pending(setup):
    owner, _, _, vehicle = setup

    r = _book(owner, vehicle, "2030-01-01T00:00", "2030-01-03T12:00", pickup_location="  Airport ")

    assert r.id is not None
    assert r.status == "pending"
    assert r.user_id == owner.id
    assert r.total_cost == Decimal("150")
    assert r.pickup_location == "Airport"
    assert r.vehicle.slug == vehicle.slug


def test_unknown_vehicle_not_found(setup):
    owner = setup[0]
    with pytest.raises(NotFound):
        reservations.create_reservation(actor(owner), 4242, dt("2030-01-01"), dt("2030-01-02"))


def test_unavailable_vehicle_rejected_regardless_of_dates(setup):
    owner, _, _, vehicle = setup
    vehicle.availability = False
    db.session.commit()

    with pytest.raises(VehicleUnavailable):
        _book(owner, vehicle, "2030-01-01", "2030-01-02")
    # even a reversed range reports unavailability first
    with pytest.raises(VehicleUnavailable):
        _book(owner, vehicle, "2030-01-05", "2030-01-02")


@pytest.mark.parametrize("start,end", [
    ("2030-01-02", "2030-01-02"),
    ("2030-01-03", "2030-01-02"),
])
def test_invalid_range(setup, start, end):
    owner, _, _, vehicle = setup
    with pytest.raises(InvalidRange):
        _book(owner, vehicle, start, end)


def test_non_string_location_rejected(setup):
    owner, _, _, vehicle = setup
    with pytest.raises(ValidationError):
        _book(owner, vehicle, "2030-01-01", "2030-01-02", pickup_location=12)


def test_overlap_rules_are_closed_interval(setup):
    owner, other, _, vehicle = setup
    _book(owner, vehicle, "2030-01-05", "2030-01-10")

    with pytest.raises(SlotConflict):
        _book(other, vehicle, "2030-01-08", "2030-01-12")
    with pytest.raises(SlotConflict):
        _book(other, vehicle, "2030-01-10", "2030-01-12")
    with pytest.raises(SlotConflict):
        _book(other, vehicle, "2030-01-01", "2030-01-05")
    with pytest.raises(SlotConflict):
        _book(other, vehicle, "2030-01-06", "2030-01-07")

    ok = _book(other, vehicle, "2030-01-11", "2030-01-12")
    assert ok.status == "pending"
    assert Reservation.query.count() == 2


def test_other_vehicle_is_independent(setup):
    owner, other, _, vehicle = setup
    second = make_vehicle(name="Civic", brand="Honda", model="Civic")
    _book(owner, vehicle, "2030-01-05", "2030-01-10")

    r = _book(other, second, "2030-01-05", "2030-01-10")
    assert r.vehicle_id == second.id


def test_cancel_frees_the_slot(setup):
    owner, other, _, vehicle = setup
    first = _book(owner, vehicle, "2030-01-05", "2030-01-10")

    reservations.cancel_reservation(actor(owner), first.id)
    r = _book(other, vehicle, "2030-01-08", "2030-01-12")

    assert r.status == "pending"


def test_completed_reservation_does_not_block(setup):
    owner, other, admin, vehicle = setup
    first = _book(owner, vehicle, "2030-01-05", "2030-01-10")
    reservations.update_reservation_status(actor(admin), first.id, "completed")

    assert not conflicts.has_conflict(vehicle.id, dt("2030-01-06"), dt("2030-01-07"))
    assert _book(other, vehicle, "2030-01-06", "2030-01-07").status == "pending"


def test_confirmed_reservation_still_blocks(setup):
    owner, other, admin, vehicle = setup
    first = _book(owner, vehicle, "2030-01-05", "2030-01-10")
    reservations.update_reservation_status(actor(admin), first.id, "confirmed")

    assert conflicts.has_conflict(vehicle.id, dt("2030-01-10"), dt("2030-01-11"))


def test_concurrent_booking_detected_by_guard(setup, monkeypatch):
    owner, _, _, vehicle = setup
    real_has_conflict = conflicts.has_conflict

    def racing_has_conflict(vehicle_id, start_date, end_date):
        result = real_has_conflict(vehicle_id, start_date, end_date)
        # another request commits a booking for the same vehicle right now
        db.session.execute(
            update(VehicleBookingGuard)
            .where(VehicleBookingGuard.vehicle_id == vehicle_id)
            .values(version=VehicleBookingGuard.version + 1)
            .execution_options(synchronize_session=False)
        )
        return result

    monkeypatch.setattr(conflicts, "has_conflict", racing_has_conflict)

    with pytest.raises(SlotConflict):
        _book(owner, vehicle, "2030-02-01", "2030-02-03")
    assert Reservation.query.count() == 0


def test_guard_version_advances_per_booking(setup):
    owner, _, _, vehicle = setup
    _book(owner, vehicle, "2030-01-01", "2030-01-02")
    _book(owner, vehicle, "2030-01-03", "2030-01-04")

    guard = db.session.get(VehicleBookingGuard, vehicle.id)
    assert guard.version == 2


def test_user_reservations_newest_first(setup):
    owner, other, _, vehicle = setup
    first = _book(owner, vehicle, "2030-01-01", "2030-01-02")
    second = _book(owner, vehicle, "2030-02-01", "2030-02-02")
    _book(other, vehicle, "2030-03-01", "2030-03-02")

    rows = reservations.get_user_reservations(actor(owner))

    assert [r.id for r in rows] == [second.id, first.id]
    assert all(r.vehicle is not None for r in rows)


def test_get_reservation_is_repeatable(setup):
    owner, _, _, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")

    a = reservation_to_dict(reservations.get_reservation(actor(owner), r.id))
    b = reservation_to_dict(reservations.get_reservation(actor(owner), r.id))

    assert a == b


def test_get_reservation_permissive_by_default(setup):
    owner, other, _, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")

    assert reservations.get_reservation(actor(other), r.id).id == r.id


def test_get_reservation_ownership_when_configured(setup, app):
    owner, other, admin, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")
    app.config["RESERVATION_READ_REQUIRES_OWNERSHIP"] = True

    with pytest.raises(Forbidden):
        reservations.get_reservation(actor(other), r.id)
    assert reservations.get_reservation(actor(owner), r.id).id == r.id
    assert reservations.get_reservation(actor(admin), r.id).id == r.id


def test_get_missing_reservation(setup):
    with pytest.raises(NotFound):
        reservations.get_reservation(actor(setup[0]), 999)


def test_cancel_by_owner_and_admin(setup):
    owner, _, admin, vehicle = setup
    mine = _book(owner, vehicle, "2030-01-01", "2030-01-02")
    theirs = _book(owner, vehicle, "2030-01-05", "2030-01-06")

    assert reservations.cancel_reservation(actor(owner), mine.id).status == "cancelled"
    assert reservations.cancel_reservation(actor(admin), theirs.id).status == "cancelled"


def test_cancel_by_stranger_forbidden(setup):
    owner, other, _, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")

    with pytest.raises(Forbidden):
        reservations.cancel_reservation(actor(other), r.id)
    assert db.session.get(Reservation, r.id).status == "pending"


def test_completed_cannot_be_cancelled(setup):
    owner, _, admin, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")
    reservations.update_reservation_status(actor(admin), r.id, "completed")

    with pytest.raises(InvalidTransition):
        reservations.cancel_reservation(actor(owner), r.id)


def test_cancelled_cannot_be_reconfirmed(setup):
    owner, _, admin, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")
    reservations.cancel_reservation(actor(owner), r.id)

    with pytest.raises(InvalidTransition):
        reservations.update_reservation_status(actor(admin), r.id, "confirmed")


def test_cancel_missing(setup):
    with pytest.raises(NotFound):
        reservations.cancel_reservation(actor(setup[0]), 999)


def test_status_update_requires_admin(setup):
    owner, _, _, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")

    with pytest.raises(Forbidden):
        reservations.update_reservation_status(actor(owner), r.id, "confirmed")


def test_status_update_rejects_unknown_status(setup):
    owner, _, admin, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")

    with pytest.raises(ValidationError):
        reservations.update_reservation_status(actor(admin), r.id, "archived")


def test_status_update_follows_lifecycle(setup):
    owner, _, admin, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")

    assert reservations.update_reservation_status(actor(admin), r.id, "confirmed").status == "confirmed"
    assert reservations.update_reservation_status(actor(admin), r.id, "completed").status == "completed"
    with pytest.raises(InvalidTransition):
        reservations.update_reservation_status(actor(admin), r.id, "pending")


def test_total_cost_not_recomputed_after_rate_change(setup):
    owner, _, _, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-03")
    vehicle.price_per_day = Decimal("80")
    db.session.commit()

    assert reservations.get_reservation(actor(owner), r.id).total_cost == Decimal("100")


def _status_changes_after_check(monkeypatch, status):
    """Make another request commit `status` right after the lifecycle check passes."""
    real_check = lifecycle.check_transition

    def racing_check(actor_, reservation, target):
        real_check(actor_, reservation, target)
        db.session.execute(
            update(Reservation)
            .where(Reservation.id == reservation.id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()

    monkeypatch.setattr(lifecycle, "check_transition", racing_check)


def test_cancel_loses_to_concurrent_completion(setup, monkeypatch):
    owner, _, _, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")
    _status_changes_after_check(monkeypatch, "completed")

    with pytest.raises(InvalidTransition):
        reservations.cancel_reservation(actor(owner), r.id)

    db.session.expire_all()
    assert db.session.get(Reservation, r.id).status == "completed"


def test_admin_status_change_loses_to_concurrent_cancel(setup, monkeypatch):
    owner, _, admin, vehicle = setup
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")
    _status_changes_after_check(monkeypatch, "cancelled")

    with pytest.raises(InvalidTransition):
        reservations.update_reservation_status(actor(admin), r.id, "confirmed")

    db.session.expire_all()
    assert db.session.get(Reservation, r.id).status == "cancelled"


def test_store_update_keeps_vehicle_and_user_fixed(setup):
    owner, other, _, vehicle = setup
    second = make_vehicle(name="Civic", brand="Honda", model="Civic")
    r = _book(owner, vehicle, "2030-01-01", "2030-01-02")

    with pytest.raises(ValidationError):
        reservation_store.update(r, vehicle_id=second.id)
    with pytest.raises(ValidationError):
        reservation_store.update(r, status="cancelled", user_id=other.id)

    db.session.expire_all()
    row = db.session.get(Reservation, r.id)
    assert (row.vehicle_id, row.user_id, row.status) == (vehicle.id, owner.id, "pending")


def test_missing_guard_row_is_created_on_first_booking(setup):
    owner, _, _, vehicle = setup
    owner_actor, vehicle_id = actor(owner), vehicle.id
    db.session.execute(delete(VehicleBookingGuard))
    db.session.commit()
    db.session.expunge_all()

    reservations.create_reservation(owner_actor, vehicle_id, dt("2030-01-01"), dt("2030-01-02"))

    assert db.session.get(VehicleBookingGuard, vehicle_id).version == 1


def test_concurrent_first_booking_on_missing_guard(setup, monkeypatch):
    owner, _, _, vehicle = setup
    owner_actor, vehicle_id = actor(owner), vehicle.id
    db.session.expunge_all()
    real_select = reservations.select

    # the guard lookup misses, then another request's guard row is already there on insert
    monkeypatch.setattr(reservations, "select", lambda *entities: real_select(*entities).where(false()))

    with pytest.raises(SlotConflict):
        reservations.create_reservation(owner_actor, vehicle_id, dt("2030-01-01"), dt("2030-01-02"))

    assert Reservation.query.count() == 0
    assert db.session.get(VehicleBookingGuard, vehicle_id).version == 0
