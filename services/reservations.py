"""
Reservation orchestration: composes the catalog, conflict checker,
pricing and lifecycle into the operations exposed to callers.

Creation is serialized per vehicle through VehicleBookingGuard. The
guard version is read before the conflict check and bumped with a
compare-and-set in the same transaction as the insert; if another
booking for the vehicle committed in between, the set matches no row
and the whole transaction is rolled back as a SlotConflict.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.booking_guard import VehicleBookingGuard
from models.reservation import Reservation
from services import catalog, conflicts, lifecycle, pricing, reservation_store
from services.errors import (
    Forbidden,
    InvalidRange,
    InvalidTransition,
    NotFound,
    SlotConflict,
    StoreError,
    ValidationError,
    VehicleUnavailable,
)


def _optional_text(value, name):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip() or None


def _read_guard_version(vehicle_id) -> int:
    guard = db.session.execute(
        select(VehicleBookingGuard)
        .where(VehicleBookingGuard.vehicle_id == vehicle_id)
        .with_for_update()
    ).scalar_one_or_none()
    if guard is None:
        # vehicles created before guards existed; two first bookings may race here
        guard = VehicleBookingGuard(vehicle_id=vehicle_id, version=0)
        db.session.add(guard)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.info("Concurrent first booking for vehicle %s, rejecting reservation", vehicle_id)
            raise SlotConflict("Vehicle was just booked by another request; pick other dates")
    return guard.version


def _claim_guard(vehicle_id, seen_version) -> bool:
    result = db.session.execute(
        update(VehicleBookingGuard)
        .where(
            VehicleBookingGuard.vehicle_id == vehicle_id,
            VehicleBookingGuard.version == seen_version,
        )
        .values(version=seen_version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def create_reservation(
    actor,
    vehicle_id,
    start_date: datetime,
    end_date: datetime,
    pickup_location=None,
    dropoff_location=None,
    special_requests=None,
) -> Reservation:
    pickup_location = _optional_text(pickup_location, "pickup_location")
    dropoff_location = _optional_text(dropoff_location, "dropoff_location")
    special_requests = _optional_text(special_requests, "special_requests")

    vehicle = catalog.find_vehicle(vehicle_id)
    if not vehicle:
        raise NotFound("Vehicle not found")

    if not vehicle.availability:
        raise VehicleUnavailable()

    if start_date >= end_date:
        raise InvalidRange()

    try:
        seen_version = _read_guard_version(vehicle.id)

        if conflicts.has_conflict(vehicle.id, start_date, end_date):
            db.session.rollback()
            raise SlotConflict()

        total_cost = pricing.price(start_date, end_date, vehicle.price_per_day)

        reservation = Reservation(
            user_id=actor.id,
            vehicle_id=vehicle.id,
            start_date=start_date,
            end_date=end_date,
            status=lifecycle.PENDING,
            total_cost=total_cost,
            pickup_location=pickup_location,
            dropoff_location=dropoff_location,
            special_requests=special_requests,
        )
        reservation_store.insert(reservation)

        if not _claim_guard(vehicle.id, seen_version):
            db.session.rollback()
            current_app.logger.info(
                "Concurrent booking detected for vehicle %s, rejecting reservation", vehicle.id
            )
            raise SlotConflict("Vehicle was just booked by another request; pick other dates")

        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError() from exc

    return reservation


def get_user_reservations(actor):
    return reservation_store.find_by_user(actor.id)


def get_reservation(actor, reservation_id) -> Reservation:
    reservation = reservation_store.find_by_id(reservation_id)
    if not reservation:
        raise NotFound("Reservation not found")

    if current_app.config.get("RESERVATION_READ_REQUIRES_OWNERSHIP", False):
        if reservation.user_id != actor.id and not actor.is_admin:
            raise Forbidden("Not authorized to access this reservation")

    return reservation


def _move_status(reservation, seen_status, target) -> Reservation:
    """Apply a checked transition only if nobody moved the row since it was read."""
    reservation_id = reservation.id
    if reservation_store.update(reservation, expected_status=seen_status, status=target) is None:
        current = reservation_store.find_by_id(reservation_id)
        now = current.status if current else "gone"
        current_app.logger.info(
            "Reservation %s moved from %s to %s concurrently; rejecting %s",
            reservation_id, seen_status, now, target,
        )
        raise InvalidTransition(f"Reservation is now {now}; cannot move it to {target}")
    return reservation


def cancel_reservation(actor, reservation_id) -> Reservation:
    reservation = reservation_store.find_by_id(reservation_id)
    if not reservation:
        raise NotFound("Reservation not found")

    seen_status = reservation.status
    lifecycle.check_transition(actor, reservation, lifecycle.CANCELLED)
    return _move_status(reservation, seen_status, lifecycle.CANCELLED)


def update_reservation_status(actor, reservation_id, new_status) -> Reservation:
    if not actor.is_admin:
        raise Forbidden("Only an admin can change reservation status")

    reservation = reservation_store.find_by_id(reservation_id)
    if not reservation:
        raise NotFound("Reservation not found")

    target = lifecycle.parse_status(new_status)
    seen_status = reservation.status
    lifecycle.check_transition(actor, reservation, target)
    return _move_status(reservation, seen_status, target)
