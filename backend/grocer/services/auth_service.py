# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Credential Service

WHY: Accounts are the tenant roots. Uses bcrypt for password hashing and
validates password strength. Token minting lives in identity_service; this
module only answers "do these credentials belong to a user?".

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Email comparison is case-insensitive (stored lowercased)
"""

import bcrypt
import re
from ..extensions import db
from ..models import User, Product, Sale
from ..validation import ConflictError, ValidationError
from .tenant_service import OwnerScope
from grocer.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(email: str, name: str, password: str) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: malformed email or blank name
        ConflictError: email already registered
        PasswordValidationError: weak password
    """
    email = normalize_email(email)
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("email is not a valid address", field="email")

    name = (name or "").strip()
    if not name:
        raise ValidationError("name cannot be blank", field="name")

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("Email already registered")

    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate_credentials(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(User.email == normalize_email(email)).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def delete_user(user_id: int) -> bool:
    """
    Permanently delete a user and everything they own.

    Outstanding tokens for the user stop resolving immediately.
    """
    user = db.session.get(User, user_id)
    if user is None:
        return False

    # Explicit deletes so SQLite without foreign-key enforcement behaves the same
    scope = OwnerScope(user_id)
    for sale in scope.query(Sale).all():
        db.session.delete(sale)
    scope.query(Product).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.commit()
    return True
