import json

from flask import Blueprint, jsonify, g, request, current_app
from security.rbac import require_roles, ADMIN, USER
from services import reporting
from services.lifecycle import STATUSES
from utils.audit import log_event
from utils.serializers import reservation_to_dict, user_to_dict, vehicle_to_dict
from models import db
from models.user import User, Role
from models.reservation import Reservation
from models.audit_log import AuditLog

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/dashboard")
@require_roles(ADMIN)
def dashboard():
    stats = reporting.dashboard_stats(
        popular_limit=current_app.config.get("POPULAR_VEHICLES_LIMIT", 5),
        monthly_limit=current_app.config.get("MONTHLY_REVENUE_BUCKETS", 12),
    )
    totals = dict(stats["totals"], revenue=float(stats["totals"]["revenue"]))

    log_event("ADMIN_DASHBOARD_VIEW", user_id=g.user.id)
    return jsonify(
        totals=totals,
        popular_vehicles=[
            {"vehicle": vehicle_to_dict(row["vehicle"]), "count": row["count"], "revenue": float(row["revenue"])}
            for row in stats["popular_vehicles"]
        ],
        monthly_revenue=[
            dict(row, revenue=float(row["revenue"])) for row in stats["monthly_revenue"]
        ],
    ), 200


@admin_bp.get("/users")
@require_roles(ADMIN)
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.created_at.desc()).limit(current_app.config.get("ADMIN_LIST_LIMIT", 200)).all()
    return jsonify([user_to_dict(u) for u in users]), 200


@admin_bp.put("/users/<int:user_id>/role")
@require_roles(ADMIN)
def update_user_role(user_id: int):
    data = request.get_json(silent=True) or {}
    role_name = (data.get("role") or "").strip().upper() if isinstance(data.get("role"), str) else ""
    if role_name not in (USER, ADMIN):
        return jsonify(error="role must be 'user' or 'admin'", kind="validation_error"), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found", kind="not_found"), 404

    if user.id == g.user.id and role_name != ADMIN:
        return jsonify(error="Cannot remove your own ADMIN role", kind="forbidden"), 403

    if role_name != ADMIN and ADMIN in user.role_names:
        admin_count = User.query.join(User.roles).filter(Role.name == ADMIN).count()
        if admin_count <= 1:
            return jsonify(error="Cannot remove the last ADMIN", kind="forbidden"), 403

    role = Role.query.filter_by(name=role_name).first()
    if not role:
        role = Role(name=role_name)
        db.session.add(role)
        db.session.flush()

    user.roles = [role]
    db.session.commit()

    log_event(
        "ADMIN_UPDATE_ROLE",
        user_id=g.user.id,
        entity="user",
        entity_id=user.id,
        metadata={"role": role_name},
    )
    return jsonify(message="Role updated", data=user_to_dict(user)), 200


@admin_bp.get("/reservations")
@require_roles(ADMIN)
def list_reservations():
    status = (request.args.get("status") or "").strip().lower()
    if status and status not in STATUSES:
        return jsonify(error=f"status must be one of: {', '.join(STATUSES)}", kind="validation_error"), 400

    q = Reservation.query
    if status:
        q = q.filter(Reservation.status == status)

    rows = (
        q.order_by(Reservation.created_at.desc(), Reservation.id.desc())
        .limit(current_app.config.get("ADMIN_LIST_LIMIT", 200))
        .all()
    )
    return jsonify(count=len(rows), data=[reservation_to_dict(r, include_user=True) for r in rows]), 200


@admin_bp.get("/audit-logs")
@require_roles(ADMIN)
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))
    action = (request.args.get("action") or "").strip().upper()
    entity = (request.args.get("entity") or "").strip().lower()

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if entity:
        q = q.filter(AuditLog.entity == entity)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "timestamp": r.timestamp.isoformat(),
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "metadata": json.loads(r.metadata_json) if r.metadata_json else None,
        }
        for r in rows
    ]), 200
