"""
Vehicle catalog: lookups used by the reservation engine plus admin CRUD.
The reservation engine only ever reads from here.
"""
import re

from sqlalchemy.exc import IntegrityError

from models import db
from models.vehicle import Vehicle, FUEL_TYPES, TRANSMISSIONS
from models.reservation import Reservation
from models.booking_guard import VehicleBookingGuard
from services.errors import Conflict, NotFound, ValidationError
from services.pricing import to_amount

REQUIRED_FIELDS = (
    "name", "type", "brand", "model", "year",
    "price_per_day", "seating_capacity", "fuel_type", "transmission", "mileage",
)
TEXT_FIELDS = ("name", "type", "brand", "model", "mileage", "description")

_slug_re = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    return _slug_re.sub("-", (text or "").strip().lower()).strip("-")


def find_vehicle(vehicle_id):
    return db.session.get(Vehicle, vehicle_id)


def get_vehicle_by_slug(slug: str) -> Vehicle:
    vehicle = Vehicle.query.filter_by(slug=slug).first()
    if not vehicle:
        raise NotFound("Vehicle not found")
    return vehicle


def list_vehicles(include_unavailable=False):
    q = Vehicle.query
    if not include_unavailable:
        q = q.filter(Vehicle.availability.is_(True))
    return q.order_by(Vehicle.created_at.desc(), Vehicle.id.desc()).all()


def _int_field(data, name, minimum=None):
    value = data.get(name)
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return number


def _string_list(value, name):
    if value is None:
        return []
    if isinstance(value, str):
        # comma separated form input
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{name} must be a list of strings")
    return [v.strip() for v in value if v.strip()]


def _clean(data: dict, partial: bool) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")

    if not partial:
        missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}")

    out = {}
    for name in TEXT_FIELDS:
        if name in data:
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"{name} must be a string")
            value = (value or "").strip() or None
            if value is None and name in REQUIRED_FIELDS:
                raise ValidationError(f"{name} is required")
            out[name] = value

    if "year" in data:
        out["year"] = _int_field(data, "year", minimum=1886)
    if "seating_capacity" in data:
        out["seating_capacity"] = _int_field(data, "seating_capacity", minimum=1)
    if "price_per_day" in data:
        out["price_per_day"] = to_amount(data.get("price_per_day"))

    if "fuel_type" in data:
        fuel = (data.get("fuel_type") or "").strip().lower() if isinstance(data.get("fuel_type"), str) else None
        if fuel not in FUEL_TYPES:
            raise ValidationError(f"fuel_type must be one of: {', '.join(FUEL_TYPES)}")
        out["fuel_type"] = fuel
    if "transmission" in data:
        trans = (data.get("transmission") or "").strip().lower() if isinstance(data.get("transmission"), str) else None
        if trans not in TRANSMISSIONS:
            raise ValidationError(f"transmission must be one of: {', '.join(TRANSMISSIONS)}")
        out["transmission"] = trans

    if "availability" in data:
        if not isinstance(data.get("availability"), bool):
            raise ValidationError("availability must be a boolean")
        out["availability"] = data["availability"]

    if "features" in data:
        out["features"] = _string_list(data.get("features"), "features")
    if "images" in data:
        out["images"] = _string_list(data.get("images"), "images")

    if "slug" in data:
        slug = slugify(data.get("slug") if isinstance(data.get("slug"), str) else "")
        if not slug:
            raise ValidationError("slug must contain letters or digits")
        out["slug"] = slug

    return out


def create_vehicle(data: dict) -> Vehicle:
    fields = _clean(data, partial=False)
    if "slug" not in fields:
        fields["slug"] = slugify(f"{fields['brand']} {fields['model']} {fields['year']}")

    vehicle = Vehicle(**fields)
    db.session.add(vehicle)
    try:
        db.session.flush()
        db.session.add(VehicleBookingGuard(vehicle_id=vehicle.id, version=0))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("A vehicle with this slug already exists")
    return vehicle


def update_vehicle(vehicle_id, data: dict) -> Vehicle:
    vehicle = find_vehicle(vehicle_id)
    if not vehicle:
        raise NotFound("Vehicle not found")

    fields = _clean(data, partial=True)
    for name, value in fields.items():
        setattr(vehicle, name, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("A vehicle with this slug already exists")
    return vehicle


def delete_vehicle(vehicle_id) -> None:
    vehicle = find_vehicle(vehicle_id)
    if not vehicle:
        raise NotFound("Vehicle not found")

    # reservations keep their vehicle reference forever
    if Reservation.query.filter_by(vehicle_id=vehicle.id).first() is not None:
        raise Conflict("Vehicle has reservations; set availability to false instead")

    VehicleBookingGuard.query.filter_by(vehicle_id=vehicle.id).delete()
    db.session.delete(vehicle)
    db.session.commit()
