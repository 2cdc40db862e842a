"""
Login Lockout Service

WHY: Slow down password guessing against a shop account. After too many
consecutive failures the account is locked for a fixed duration.

STATE MACHINE (per account):
    active --(MAX_FAILED_ATTEMPTS consecutive failures)--> locked
    locked --(now >= locked_at + lock_duration)--> active
    locked/active --(successful login)--> active, counter reset

BOOKKEEPING:
- Counter lives on the shop row (failed_login_attempts)
- Each failure is a lookup by email followed by an update by id; there is
  no atomic increment, so overlapping failures can under-count
- The lock check is a wall-clock comparison against locked_at + duration
- Attempts while locked are rejected without touching the counter
- Unknown emails are not tracked
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Shop
from .auth_service import get_shop_by_email
from shopdesk.time_utils import utcnow, to_utc_z


# Configuration constants
MAX_FAILED_ATTEMPTS = 5  # Lock on the 5th consecutive failure
LOCK_DURATION_MINUTES = 15  # Lockout for 15 minutes


@dataclass
class FailedAttemptResult:
    """Outcome of recording one failed login."""
    tracked: bool  # False when the email has no account
    failed_attempts: int
    attempts_remaining: int | None
    locked: bool
    locked_until: datetime | None = None


def _seconds_until(expiry: datetime, now: datetime) -> int:
    return max(int((expiry - now).total_seconds()), 0)


def _active_lock_expiry(shop: Shop, now: datetime) -> datetime | None:
    expiry = shop.locked_until
    if expiry is not None and now < expiry:
        return expiry
    return None


def _admin_locked(shop: Shop) -> bool:
    """Status "locked" with no lock timestamp was set by an administrator."""
    return shop.account_status == "locked" and shop.locked_at is None


def _clear_lock(shop: Shop) -> None:
    # Only a timed lock flips status back; an administrative "locked" stays
    if shop.account_status == "locked" and shop.locked_at is not None:
        shop.account_status = "active"
    shop.failed_login_attempts = 0
    shop.locked_at = None
    shop.lock_duration_minutes = None


def is_account_locked(email: str) -> tuple[bool, int | None]:
    """
    Check if an account is currently locked due to too many failed attempts.

    An expired lock is cleared on observation, returning the account to
    active with a fresh counter.

    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    shop = get_shop_by_email(email)
    if not shop:
        return False, None

    now = utcnow()
    expiry = _active_lock_expiry(shop, now)
    if expiry is not None:
        return True, _seconds_until(expiry, now)

    if shop.locked_at is not None:
        _clear_lock(shop)
        db.session.commit()
        current_app.logger.info("Login lock expired for shop %s", shop.id)

    return False, None


def record_failed_attempt(email: str) -> FailedAttemptResult:
    """
    Record a failed login attempt and lock the account on the threshold.

    Returns the attempt bookkeeping so the caller can word its response.
    """
    shop = get_shop_by_email(email)
    if not shop:
        return FailedAttemptResult(
            tracked=False,
            failed_attempts=0,
            attempts_remaining=None,
            locked=False,
        )

    now = utcnow()

    # Already locked: reject without counting
    expiry = _active_lock_expiry(shop, now)
    if expiry is not None:
        return FailedAttemptResult(
            tracked=True,
            failed_attempts=shop.failed_login_attempts,
            attempts_remaining=0,
            locked=True,
            locked_until=expiry,
        )

    failed_attempts = (shop.failed_login_attempts or 0) + 1
    shop.failed_login_attempts = failed_attempts
    shop.last_failed_login_at = now

    # Never stamp a timed lock over an administrative one
    locked = failed_attempts >= MAX_FAILED_ATTEMPTS and not _admin_locked(shop)
    if locked:
        shop.locked_at = now
        shop.lock_duration_minutes = LOCK_DURATION_MINUTES
        # Pending/frozen/rejected keep their status; the lock is tracked by timestamp
        if shop.account_status == "active":
            shop.account_status = "locked"

    db.session.commit()

    if locked:
        current_app.logger.warning(
            "Shop %s locked after %d failed login attempts", shop.id, failed_attempts
        )

    return FailedAttemptResult(
        tracked=True,
        failed_attempts=failed_attempts,
        attempts_remaining=max(MAX_FAILED_ATTEMPTS - failed_attempts, 0),
        locked=locked,
        locked_until=shop.locked_until if locked else None,
    )


def record_successful_login(shop: Shop) -> None:
    """
    Record a successful login: reset the counter, drop any lock and stamp
    last_login_at.
    """
    _clear_lock(shop)
    shop.last_login_at = utcnow()
    db.session.commit()


def unlock_account(email: str) -> Shop | None:
    """Administrative unlock. Returns None when the email has no account."""
    shop = get_shop_by_email(email)
    if not shop:
        return None
    _clear_lock(shop)
    db.session.commit()
    return shop


def get_lockout_status(email: str) -> dict:
    """
    Get detailed lockout status for an account.

    Returns dict with:
    - locked: bool
    - failed_attempts: int
    - max_attempts: int
    - seconds_until_unlock: int | None
    """
    is_locked, seconds_remaining = is_account_locked(email)
    shop = get_shop_by_email(email)

    return {
        "locked": is_locked,
        "failed_attempts": shop.failed_login_attempts if shop else 0,
        "max_attempts": MAX_FAILED_ATTEMPTS,
        "seconds_until_unlock": seconds_remaining,
        "locked_until": to_utc_z(shop.locked_until) if (shop and is_locked) else None,
        "lock_duration_minutes": LOCK_DURATION_MINUTES,
    }