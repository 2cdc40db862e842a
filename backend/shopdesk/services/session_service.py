# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Bearer tokens for shop accounts with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout, password change or account freeze
"""

import secrets
import hashlib
import hmac
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, Shop
from shopdesk.time_utils import utcnow


# Configuration constants
SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout

# Administrative statuses that end live sessions. A timed login lock does
# not: it guards the password, not the sessions already opened with it.
SESSION_REVOKING_STATUSES = ("frozen", "rejected")


@dataclass
class SessionContext:
    """Session context returned by validate_session."""
    shop: Shop
    session: SessionToken

    @property
    def shop_id(self) -> int:
        return self.shop.id


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def constant_time_equals(presented: str, expected: str) -> bool:
    return hmac.compare_digest(presented.encode('utf-8'), expected.encode('utf-8'))


def create_session(
    shop_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for a shop account.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    shop = db.session.get(Shop, shop_id)
    if not shop:
        raise ValueError("Shop not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        shop_id=shop_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is invalid, expired, or revoked
    - The shop account was frozen or rejected since sign-in

    Updates last_used_at on successful validation (activity tracking).
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    shop = session.shop
    if not shop or shop.account_status in SESSION_REVOKING_STATUSES:
        _revoke(session, f"Account {shop.account_status if shop else 'deleted'}")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(shop=shop, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_shop_sessions(shop_id: int, reason: str, keep_session_id: int | None = None) -> int:
    """
    Revoke all active sessions for a shop, optionally keeping the caller's.

    Returns count of sessions revoked.
    """
    query = db.session.query(SessionToken).filter_by(shop_id=shop_id, is_revoked=False)
    if keep_session_id is not None:
        query = query.filter(SessionToken.id != keep_session_id)

    count = 0
    for session in query.all():
        _revoke(session, reason)
        count += 1

    db.session.commit()
    return count


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete expired and revoked sessions older than the retention window.

    Returns count of sessions deleted.
    """
    cutoff = utcnow() - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
