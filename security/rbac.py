from functools import wraps
from flask import g, jsonify

PRIVILEGED_ROLES = {"ADMIN", "SUPER_ADMIN"}

def is_privileged() -> bool:
    user = getattr(g, "user", None)
    return bool(user and user.roles & PRIVILEGED_ROLES)

def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            if "SUPER_ADMIN" not in user.roles and not user.roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
