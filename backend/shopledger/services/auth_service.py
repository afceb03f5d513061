# Overview: Account registration and password authentication for shop owners.

"""
Authentication service.

Passwords are hashed with bcrypt (cost from BCRYPT_ROUNDS). Session tokens
are handled separately in session_service.py.

Password rule: at least 8 characters with an uppercase letter, a lowercase
letter and a digit.
"""

import re

import bcrypt
from flask import current_app

from ..errors import AuthenticationError, ConflictError, ValidationError
from ..extensions import db
from ..models import User
from shopledger.time_utils import utcnow


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_password_strength(password: str) -> None:
    """Raise ValidationError if the password is too weak."""
    if not isinstance(password, str) or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise ValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise ValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise ValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("A valid email address is required")
    return email


def create_user(first_name: str, email: str, password: str, last_name: str | None = None) -> User:
    """
    Register a shop owner.

    Raises:
        ValidationError: missing name, bad email or weak password
        ConflictError: the email is already registered
    """
    first_name = (first_name or "").strip()
    if not first_name:
        raise ValidationError("first_name is required")
    email = normalize_email(email)

    if db.session.query(User.id).filter_by(email=email).first():
        raise ConflictError("A user with this email already exists")

    user = User(
        first_name=first_name,
        last_name=(last_name or "").strip() or None,
        email=email,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("User registered: id=%s email=%s", user.id, user.email)
    return user


def authenticate(email: str, password: str) -> User:
    """
    Check credentials and stamp last_login_at.

    The same message is used for unknown email and wrong password.
    """
    email = (email or "").strip().lower()
    user = db.session.query(User).filter_by(email=email, is_active=True).first()
    if not user or not password or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    user.last_login_at = utcnow()
    db.session.commit()
    return user
