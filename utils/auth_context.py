from collections import namedtuple
from functools import wraps
from flask import g, jsonify, request, current_app

# Identity is established by the upstream gateway; we only read its verdict.
Actor = namedtuple("Actor", ["id", "roles"])

def load_current_user():
    user_header = current_app.config.get("IDENTITY_USER_HEADER", "X-User-Id")
    roles_header = current_app.config.get("IDENTITY_ROLES_HEADER", "X-User-Roles")

    raw_id = (request.headers.get(user_header) or "").strip()
    if not raw_id.isdigit():
        g.user = None
        return

    roles = request.headers.get(roles_header) or ""
    g.user = Actor(
        id=int(raw_id),
        roles=frozenset(r.strip().upper() for r in roles.split(",") if r.strip()),
    )

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
