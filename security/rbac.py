from collections import namedtuple
from functools import wraps
from flask import g, jsonify

ADMIN = "ADMIN"
USER = "USER"


class Actor(namedtuple("Actor", ["id", "role"])):
    """Authenticated caller as seen by the service layer: role is 'admin' or 'user'."""
    __slots__ = ()

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def actor_for(user) -> Actor:
    return Actor(id=user.id, role="admin" if ADMIN in user.role_names else "user")


def current_actor() -> Actor:
    return actor_for(g.user)


def has_role(role_name: str) -> bool:
    user = getattr(g, "user", None)
    if not user:
        return False
    return role_name in user.role_names

def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required", kind="unauthenticated"), 401

            if not user.role_names.intersection(set(role_names)):
                return jsonify(error="Forbidden", kind="forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
