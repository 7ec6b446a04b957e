"""
Read-only aggregates for the admin dashboard. Revenue only ever counts
completed reservations.
"""
from decimal import Decimal

from sqlalchemy import extract, func

from models import db
from models.reservation import Reservation
from models.user import User
from models.vehicle import Vehicle
from services.lifecycle import ACTIVE_STATUSES, COMPLETED


def _money(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def total_revenue() -> Decimal:
    value = (
        db.session.query(func.coalesce(func.sum(Reservation.total_cost), 0))
        .filter(Reservation.status == COMPLETED)
        .scalar()
    )
    return _money(value)


def totals() -> dict:
    return {
        "users": db.session.query(func.count(User.id)).scalar(),
        "vehicles": db.session.query(func.count(Vehicle.id)).scalar(),
        "reservations": db.session.query(func.count(Reservation.id)).scalar(),
        "active_reservations": (
            db.session.query(func.count(Reservation.id))
            .filter(Reservation.status.in_(ACTIVE_STATUSES))
            .scalar()
        ),
        "revenue": total_revenue(),
    }


def popular_vehicles(limit=5):
    """Vehicles with the most completed rentals, with the revenue they brought in."""
    rental_count = func.count(Reservation.id).label("count")
    revenue = func.sum(Reservation.total_cost).label("revenue")
    rows = (
        db.session.query(Vehicle, rental_count, revenue)
        .join(Reservation, Reservation.vehicle_id == Vehicle.id)
        .filter(Reservation.status == COMPLETED)
        .group_by(Vehicle.id)
        .order_by(rental_count.desc(), Vehicle.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {"vehicle": vehicle, "count": count, "revenue": _money(amount)}
        for vehicle, count, amount in rows
    ]


def monthly_revenue(limit=12):
    year = extract("year", Reservation.created_at).label("year")
    month = extract("month", Reservation.created_at).label("month")
    rows = (
        db.session.query(
            year,
            month,
            func.sum(Reservation.total_cost).label("revenue"),
            func.count(Reservation.id).label("count"),
        )
        .filter(Reservation.status == COMPLETED)
        .group_by(year, month)
        .order_by(year.asc(), month.asc())
        .limit(limit)
        .all()
    )
    return [
        {"year": int(y), "month": int(m), "revenue": _money(amount), "count": count}
        for y, m, amount, count in rows
    ]


def dashboard_stats(popular_limit=5, monthly_limit=12) -> dict:
    return {
        "totals": totals(),
        "popular_vehicles": popular_vehicles(popular_limit),
        "monthly_revenue": monthly_revenue(monthly_limit),
    }
