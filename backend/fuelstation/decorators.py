# Overview: Request authentication decorator for API routes.

from functools import wraps

from flask import g, jsonify, request

from .services import employee_service
from .store import get_store


def get_user_from_request(req):
    """Employee for the request's ``Authorization: Bearer <token>`` header, or None."""
    auth_header = req.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return employee_service.authenticate_token(get_store(), token)


def require_auth(f):
    """
    Require a valid employee token.

    Sets g.current_user to the authenticated Employee. Returns 401 if the
    Authorization header is missing, malformed, or names no active employee.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        employee = get_user_from_request(request)
        if not employee:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = employee
        return f(*args, **kwargs)

    return decorated_function
