# Overview: Service-layer operations for staff accounts and password checks.

"""
WHY: Every cash and stock movement must be attributable. Uses bcrypt for
password storage.

SECURITY:
- Passwords hashed with bcrypt (cost factor 12)
- Timing-safe verification via bcrypt.checkpw
"""

import bcrypt

from ..extensions import db
from ..errors import ConflictError, ValidationError
from ..models import User
from ..time_utils import utcnow


MIN_PASSWORD_LENGTH = 8


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if password.isdigit() or password.isalpha():
        raise ValidationError("Password must mix letters and digits")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """Hash password using bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database; never authenticate
        return False


def create_user(username: str, password: str, display_name: str | None = None, *, rounds: int = 12) -> User:
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")

    validate_password_strength(password)

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError(f"User '{username}' already exists")

    user = User(
        username=username,
        display_name=display_name,
        password_hash=hash_password(password, rounds=rounds),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """Return the active user for these credentials, or None."""
    user = db.session.query(User).filter_by(username=(username or "").strip()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
