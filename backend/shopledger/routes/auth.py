# Overview: Flask API routes for registration, login and session handling.

from flask import Blueprint, g, request

from ..decorators import bearer_token, require_auth
from ..errors import LedgerError, ValidationError
from ..services import auth_service, session_service
from . import error_response, internal_error, ok

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """Create a shop owner account and log it in."""
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            password=data.get("password"),
        )
        session, token = session_service.create_session(user.id)
        return ok(
            {"user": user.to_dict(), "token": token, "expires_at": session.to_dict()["expires_at"]},
            message="Registration successful.",
            status=201,
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("register user")


@auth_bp.post("/login")
def login_route():
    """
    Exchange email + password for a bearer token.

    The token goes in the Authorization header: ``Bearer <token>``.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")
        if not email or not password:
            raise ValidationError("email and password required")

        user = auth_service.authenticate(email, password)
        session, token = session_service.create_session(user.id)
        return ok(
            {"user": user.to_dict(), "token": token, "expires_at": session.to_dict()["expires_at"]},
            message="Login successful.",
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("log in")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(bearer_token())
        return ok(message="Logged out.")
    except Exception:
        return internal_error("log out")


@auth_bp.get("/me")
@require_auth
def me_route():
    return ok({"user": g.current_user.to_dict()})
