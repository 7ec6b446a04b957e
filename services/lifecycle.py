from services.errors import Forbidden, InvalidTransition, ValidationError

PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"

STATUSES = (PENDING, CONFIRMED, COMPLETED, CANCELLED)
ACTIVE_STATUSES = (PENDING, CONFIRMED)
TERMINAL_STATUSES = (COMPLETED, CANCELLED)

# current status -> statuses it may move to
TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED, COMPLETED},
    CONFIRMED: {CANCELLED, COMPLETED},
    COMPLETED: set(),
    CANCELLED: set(),
}

ADMIN_ONLY_TARGETS = {CONFIRMED, COMPLETED}


def parse_status(value) -> str:
    status = (value or "").strip().lower() if isinstance(value, str) else None
    if status not in STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STATUSES)}")
    return status


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def authorize_transition(actor, reservation, target: str) -> None:
    if actor.is_admin:
        return
    if target in ADMIN_ONLY_TARGETS:
        raise Forbidden("Only an admin can set this status")
    if reservation.user_id != actor.id:
        raise Forbidden("Not authorized to change this reservation")


def check_transition(actor, reservation, target: str) -> None:
    """Raises Forbidden or InvalidTransition; returns None when the move is allowed."""
    authorize_transition(actor, reservation, target)
    if not can_transition(reservation.status, target):
        raise InvalidTransition(f"Cannot move a {reservation.status} reservation to {target}")
