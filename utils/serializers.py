def _iso(dt):
    return dt.isoformat() if dt else None


def _money(value):
    return float(value) if value is not None else None


def vehicle_to_dict(v):
    return {
        "id": v.id,
        "slug": v.slug,
        "name": v.name,
        "type": v.type,
        "brand": v.brand,
        "model": v.model,
        "year": v.year,
        "price_per_day": _money(v.price_per_day),
        "availability": v.availability,
        "description": v.description,
        "features": list(v.features or []),
        "images": list(v.images or []),
        "seating_capacity": v.seating_capacity,
        "fuel_type": v.fuel_type,
        "transmission": v.transmission,
        "mileage": v.mileage,
        "created_at": _iso(v.created_at),
        "updated_at": _iso(v.updated_at),
    }


def reservation_to_dict(r, include_user=False):
    out = {
        "id": r.id,
        "user_id": r.user_id,
        "vehicle_id": r.vehicle_id,
        "start_date": _iso(r.start_date),
        "end_date": _iso(r.end_date),
        "status": r.status,
        "total_cost": _money(r.total_cost),
        "pickup_location": r.pickup_location,
        "dropoff_location": r.dropoff_location,
        "special_requests": r.special_requests,
        "created_at": _iso(r.created_at),
        "updated_at": _iso(r.updated_at),
        "vehicle": vehicle_to_dict(r.vehicle) if r.vehicle else None,
    }
    if include_user and r.user:
        out["user"] = {"id": r.user.id, "name": r.user.name, "email": r.user.email}
    return out


def user_to_dict(u):
    return {
        "id": u.id,
        "email": u.email,
        "name": u.name,
        "phone_number": u.phone_number,
        "roles": sorted(u.role_names),
        "created_at": _iso(u.created_at),
    }
