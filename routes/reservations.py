from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, g

from security.rbac import current_actor, require_roles
from services import reservations as reservation_service
from services.errors import ValidationError
from utils.audit import log_event
from utils.auth_context import login_required
from utils.serializers import reservation_to_dict

reservations_bp = Blueprint("reservations", __name__, url_prefix="/reservations")


def _parse_datetime(value, field: str) -> datetime:
    # Expect ISO format like "2026-01-20T18:00:00" or "2026-01-20"
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use ISO e.g. 2026-01-20T18:00:00")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _parse_id(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


@reservations_bp.post("")
@login_required
def create_reservation():
    data = request.get_json(silent=True) or {}
    if data.get("vehicle_id") in (None, ""):
        raise ValidationError("vehicle_id is required")

    reservation = reservation_service.create_reservation(
        current_actor(),
        _parse_id(data.get("vehicle_id"), "vehicle_id"),
        _parse_datetime(data.get("start_date"), "start_date"),
        _parse_datetime(data.get("end_date"), "end_date"),
        pickup_location=data.get("pickup_location"),
        dropoff_location=data.get("dropoff_location"),
        special_requests=data.get("special_requests"),
    )

    log_event(
        "RESERVATION_CREATE",
        user_id=g.user.id,
        entity="reservation",
        entity_id=reservation.id,
        metadata={"vehicle_id": reservation.vehicle_id, "total_cost": reservation.total_cost},
    )
    return jsonify(reservation_to_dict(reservation)), 201


@reservations_bp.get("")
@login_required
def my_reservations():
    rows = reservation_service.get_user_reservations(current_actor())
    return jsonify(count=len(rows), data=[reservation_to_dict(r) for r in rows]), 200


@reservations_bp.get("/<int:reservation_id>")
@login_required
def get_reservation(reservation_id: int):
    reservation = reservation_service.get_reservation(current_actor(), reservation_id)
    return jsonify(reservation_to_dict(reservation, include_user=True)), 200


@reservations_bp.post("/<int:reservation_id>/cancel")
@login_required
def cancel_reservation(reservation_id: int):
    reservation = reservation_service.cancel_reservation(current_actor(), reservation_id)

    log_event("RESERVATION_CANCEL", user_id=g.user.id, entity="reservation", entity_id=reservation.id)
    return jsonify(message="Reservation cancelled", data=reservation_to_dict(reservation)), 200


@reservations_bp.put("/<int:reservation_id>")
@login_required
def cancel_reservation_alias(reservation_id: int):
    return cancel_reservation(reservation_id)


@reservations_bp.put("/<int:reservation_id>/status")
@require_roles("ADMIN")
def update_reservation_status(reservation_id: int):
    data = request.get_json(silent=True) or {}
    reservation = reservation_service.update_reservation_status(
        current_actor(), reservation_id, data.get("status")
    )

    log_event(
        "ADMIN_RESERVATION_STATUS",
        user_id=g.user.id,
        entity="reservation",
        entity_id=reservation.id,
        metadata={"status": reservation.status},
    )
    return jsonify(message="Reservation status updated", data=reservation_to_dict(reservation)), 200
