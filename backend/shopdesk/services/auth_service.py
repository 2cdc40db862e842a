# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Shop Account Authentication Service

WHY: The shop account is both the tenant and the sign-in identity. Uses
bcrypt for password hashing and validates password strength on sign-up and
on password change.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, upper, lower, digit and special character
- Emails are compared lower-cased
- Session tokens managed separately (see session_service.py)
- Failed-attempt tracking and lockout live in login_lockout_service.py
"""

import bcrypt
import re

from ..extensions import db
from ..models import Shop
from ..validation import ConflictError, ValidationError
from shopdesk.time_utils import utcnow, get_zone


# Statuses that pass credential checks but may not open a session
BLOCKED_STATUS_MESSAGES = {
    "pending": "Your account is pending approval. Please check back later.",
    "frozen": "Your account has been frozen. Please contact an administrator for assistance.",
    "rejected": "Your registration was rejected. Please contact an administrator for assistance.",
    "locked": "Your account has been locked by an administrator. Please contact an administrator for assistance.",
}

SHOP_PROFILE_FIELDS = {
    "shop_name",
    "address",
    "phone_numbers",
    "logo_url",
    "receipt_description",
    "timezone",
    "display_name",
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(Exception):
    """Raised when an authentication precondition fails (wrong password, no account)."""
    pass


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


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
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Federated-only accounts have no hash and never match.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in storage
        return False


def get_shop_by_email(email: str) -> Shop | None:
    return db.session.query(Shop).filter_by(email=normalize_email(email)).first()


def _clean_profile(details: dict | None) -> dict:
    details = details or {}
    unknown = set(details) - SHOP_PROFILE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    clean: dict = {}
    for key, value in details.items():
        if key == "phone_numbers":
            if value is None:
                value = []
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list):
                raise ValidationError("phone_numbers must be a list of strings")
            clean[key] = [str(v).strip() for v in value if str(v).strip()]
        elif key == "timezone":
            name = (value or "UTC").strip()
            if get_zone(name).key != name:
                raise ValidationError(f"Unknown timezone: {name}")
            clean[key] = name
        else:
            clean[key] = value.strip() if isinstance(value, str) else value
    return clean


def register_shop(email: str, password: str, details: dict | None = None) -> Shop:
    """
    Sign up a new shop account.

    The email is the login identity and must be unique (case-insensitive).
    Password must meet strength requirements or PasswordValidationError is raised.

    Raises:
        ValidationError: malformed email or profile fields
        ConflictError: email already registered
        PasswordValidationError: weak password
    """
    email = normalize_email(email)
    if not _EMAIL_RE.match(email):
        raise ValidationError("A valid email address is required")

    profile = _clean_profile(details)

    if get_shop_by_email(email):
        raise ConflictError("An account with this email already exists")

    password_hash = hash_password(password)
    now = utcnow()

    shop = Shop(
        email=email,
        password_hash=password_hash,
        auth_provider="password",
        account_status="active",
        failed_login_attempts=0,
        last_password_change=now,
        **profile,
    )

    db.session.add(shop)
    db.session.commit()
    return shop


def authenticate(email: str, password: str) -> Shop | None:
    """
    Check credentials only.

    Returns the Shop if the password matches, None otherwise. Lockout and
    account status are deliberately left to the caller so the login flow can
    order them: lock check, credentials, attempt bookkeeping, status gate.
    """
    shop = get_shop_by_email(email)
    if not shop:
        return None

    if verify_password(password, shop.password_hash):
        return shop

    return None


def blocked_status_message(shop: Shop) -> str | None:
    """Message for accounts that may not sign in even with valid credentials."""
    return BLOCKED_STATUS_MESSAGES.get(shop.account_status)


def change_password(shop_id: int, current_password: str, new_password: str) -> Shop:
    """
    Change password after re-verifying the current one.

    Other sessions are revoked by the caller (session_service) so this stays
    a pure account update.
    """
    shop = db.session.get(Shop, shop_id)
    if not shop:
        raise AuthError("Account not found")

    if shop.password_hash and not verify_password(current_password or "", shop.password_hash):
        raise AuthError("Current password is incorrect")

    shop.password_hash = hash_password(new_password)
    shop.last_password_change = utcnow()
    db.session.commit()
    return shop


def update_shop_profile(shop_id: int, details: dict) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if not shop:
        raise AuthError("Account not found")

    for key, value in _clean_profile(details).items():
        setattr(shop, key, value)

    db.session.commit()
    return shop


def oauth_sign_in(
    email: str,
    provider: str,
    display_name: str | None = None,
    photo_url: str | None = None,
) -> Shop:
    """
    Find or create the shop behind an already-verified federated identity.

    The first sign-in creates an active account with no password. Later
    sign-ins only stamp last_login_at.
    """
    email = normalize_email(email)
    if not _EMAIL_RE.match(email):
        raise ValidationError("A valid email address is required")
    if not provider:
        raise ValidationError("provider is required")

    now = utcnow()
    shop = get_shop_by_email(email)
    if shop is None:
        shop = Shop(
            email=email,
            password_hash=None,
            auth_provider=provider,
            display_name=display_name or "",
            photo_url=photo_url or "",
            account_status="active",
            failed_login_attempts=0,
            last_login_at=now,
        )
        db.session.add(shop)
    else:
        shop.last_login_at = now

    db.session.commit()
    return shop


def set_account_status(email: str, status: str) -> Shop:
    """Administrative status change (approve, freeze, reject)."""
    from ..models.shops import ACCOUNT_STATUSES

    if status not in ACCOUNT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ACCOUNT_STATUSES)}")

    shop = get_shop_by_email(email)
    if not shop:
        raise AuthError("Account not found")

    shop.account_status = status
    if status == "locked":
        # An administrative lock carries no timestamp, so no expiry lifts it
        shop.locked_at = None
        shop.lock_duration_minutes = None
    db.session.commit()
    return shop
