from flask import Blueprint, request, jsonify, g

from security.rbac import has_role, require_roles
from services import catalog
from utils.audit import log_event
from utils.serializers import vehicle_to_dict

vehicles_bp = Blueprint("vehicles", __name__, url_prefix="/vehicles")


@vehicles_bp.get("")
def list_vehicles():
    # public sees available vehicles only
    show_all = request.args.get("show_unavailable", "").lower() == "true" and has_role("ADMIN")
    rows = catalog.list_vehicles(include_unavailable=show_all)
    return jsonify(count=len(rows), data=[vehicle_to_dict(v) for v in rows]), 200


@vehicles_bp.get("/<string:slug>")
def get_vehicle(slug: str):
    return jsonify(vehicle_to_dict(catalog.get_vehicle_by_slug(slug))), 200


@vehicles_bp.post("")
@require_roles("ADMIN")
def create_vehicle():
    vehicle = catalog.create_vehicle(request.get_json(silent=True) or {})

    log_event("VEHICLE_CREATE", user_id=g.user.id, entity="vehicle", entity_id=vehicle.id)
    return jsonify(vehicle_to_dict(vehicle)), 201


@vehicles_bp.put("/<int:vehicle_id>")
@require_roles("ADMIN")
def update_vehicle(vehicle_id: int):
    data = request.get_json(silent=True) or {}
    vehicle = catalog.update_vehicle(vehicle_id, data)

    log_event(
        "VEHICLE_UPDATE",
        user_id=g.user.id,
        entity="vehicle",
        entity_id=vehicle.id,
        metadata={"fields": sorted(data.keys())},
    )
    return jsonify(vehicle_to_dict(vehicle)), 200


@vehicles_bp.delete("/<int:vehicle_id>")
@require_roles("ADMIN")
def delete_vehicle(vehicle_id: int):
    catalog.delete_vehicle(vehicle_id)

    log_event("VEHICLE_DELETE", user_id=g.user.id, entity="vehicle", entity_id=vehicle_id)
    return jsonify(message="Vehicle deleted"), 200
