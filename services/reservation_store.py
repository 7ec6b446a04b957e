"""
Persistence contract for reservations. Every SQLAlchemy failure is rolled
back and surfaced as StoreError so callers only ever see service errors.
"""
from functools import wraps

from sqlalchemy import update as sql_update
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.reservation import Reservation
from services.errors import StoreError, ValidationError

IMMUTABLE_FIELDS = frozenset(("user_id", "vehicle_id"))


def _store_call(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError() from exc
    return wrapper


@_store_call
def insert(reservation: Reservation) -> int:
    db.session.add(reservation)
    db.session.flush()
    return reservation.id


@_store_call
def find_by_id(reservation_id):
    return db.session.get(Reservation, reservation_id)


@_store_call
def find_by_vehicle_and_status(vehicle_id, statuses, overlapping=None):
    """
    Reservations of a vehicle in the given statuses. With `overlapping`
    as (start, end) only rows whose closed interval touches it are returned.
    """
    q = Reservation.query.filter(
        Reservation.vehicle_id == vehicle_id,
        Reservation.status.in_(list(statuses)),
    )
    if overlapping is not None:
        start_date, end_date = overlapping
        q = q.filter(Reservation.start_date <= end_date, Reservation.end_date >= start_date)
    return q.order_by(Reservation.start_date.asc()).all()


@_store_call
def find_by_user(user_id):
    return (
        Reservation.query
        .filter_by(user_id=user_id)
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())
        .all()
    )


@_store_call
def update(reservation: Reservation, expected_status=None, **fields):
    """
    Write `fields` to the reservation row. With `expected_status` the write
    only lands if the row still holds that status; returns None when it
    does not, leaving the session rolled back.
    """
    immutable = IMMUTABLE_FIELDS.intersection(fields)
    if immutable:
        raise ValidationError(f"{', '.join(sorted(immutable))} cannot change after creation")

    stmt = sql_update(Reservation).where(Reservation.id == reservation.id)
    if expected_status is not None:
        stmt = stmt.where(Reservation.status == expected_status)

    result = db.session.execute(stmt.values(**fields).execution_options(synchronize_session=False))
    if result.rowcount != 1:
        db.session.rollback()
        return None

    db.session.commit()
    return reservation
