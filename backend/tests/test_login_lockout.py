# Overview: Pytest coverage for login lockout behavior.

"""
Login Lockout Tests

Covers the per-account state machine:
- 5 consecutive failures lock the account for 15 minutes
- attempts while locked are rejected without touching the counter
- an expired lock is cleared on observation
- a successful login resets the counter
"""

from datetime import timedelta

from shopdesk.models import Shop
from shopdesk.services import login_lockout_service
from shopdesk.services.auth_service import set_account_status
from shopdesk.services.login_lockout_service import (
    LOCK_DURATION_MINUTES,
    MAX_FAILED_ATTEMPTS,
    get_lockout_status,
    is_account_locked,
    record_failed_attempt,
    record_successful_login,
    unlock_account,
)
from shopdesk.time_utils import utcnow


def _fail(email: str, times: int):
    result = None
    for _ in range(times):
        result = record_failed_attempt(email)
    return result


class TestRecordFailedAttempt:

    def test_counts_up_and_reports_remaining(self, db_session, shop):
        result = record_failed_attempt(shop.email)

        assert result.tracked is True
        assert result.failed_attempts == 1
        assert result.attempts_remaining == MAX_FAILED_ATTEMPTS - 1
        assert result.locked is False
        assert db_session.get(Shop, shop.id).failed_login_attempts == 1

    def test_fifth_failure_locks_for_fifteen_minutes(self, db_session, shop):
        before = utcnow()
        result = _fail(shop.email, MAX_FAILED_ATTEMPTS)

        assert result.locked is True
        assert result.failed_attempts == MAX_FAILED_ATTEMPTS

        refreshed = db_session.get(Shop, shop.id)
        assert refreshed.account_status == "locked"
        assert refreshed.lock_duration_minutes == LOCK_DURATION_MINUTES
        assert refreshed.locked_until - refreshed.locked_at == timedelta(minutes=LOCK_DURATION_MINUTES)
        assert refreshed.locked_at >= before

    def test_attempt_while_locked_does_not_increment(self, db_session, shop):
        _fail(shop.email, MAX_FAILED_ATTEMPTS)

        result = record_failed_attempt(shop.email)

        assert result.locked is True
        assert db_session.get(Shop, shop.id).failed_login_attempts == MAX_FAILED_ATTEMPTS

    def test_unknown_email_is_not_tracked(self, db_session):
        result = record_failed_attempt("nobody@nowhere.test")

        assert result.tracked is False
        assert result.attempts_remaining is None

    def test_email_lookup_is_case_insensitive(self, db_session, shop):
        record_failed_attempt(shop.email.upper())
        assert db_session.get(Shop, shop.id).failed_login_attempts == 1

    def test_pending_account_keeps_status_when_locked(self, db_session, shop):
        shop.account_status = "pending"
        db_session.commit()

        _fail(shop.email, MAX_FAILED_ATTEMPTS)

        refreshed = db_session.get(Shop, shop.id)
        assert refreshed.account_status == "pending"
        assert is_account_locked(shop.email)[0] is True


class TestLockExpiry:

    def test_locked_reports_seconds_remaining(self, db_session, shop):
        _fail(shop.email, MAX_FAILED_ATTEMPTS)

        locked, seconds = is_account_locked(shop.email)

        assert locked is True
        assert 0 < seconds <= LOCK_DURATION_MINUTES * 60

    def test_expired_lock_is_cleared_on_observation(self, db_session, shop):
        _fail(shop.email, MAX_FAILED_ATTEMPTS)
        refreshed = db_session.get(Shop, shop.id)
        refreshed.locked_at = utcnow() - timedelta(minutes=LOCK_DURATION_MINUTES + 1)
        db_session.commit()

        locked, seconds = is_account_locked(shop.email)

        assert locked is False
        assert seconds is None
        refreshed = db_session.get(Shop, shop.id)
        assert refreshed.account_status == "active"
        assert refreshed.failed_login_attempts == 0
        assert refreshed.locked_at is None

    def test_admin_lock_is_not_lifted_by_expiry_check(self, db_session, shop):
        shop.account_status = "locked"
        db_session.commit()

        assert is_account_locked(shop.email) == (False, None)
        assert db_session.get(Shop, shop.id).account_status == "locked"

    def test_failures_on_admin_locked_account_cannot_expire_into_active(self, db_session, shop):
        shop.account_status = "locked"
        db_session.commit()

        result = _fail(shop.email, MAX_FAILED_ATTEMPTS)
        assert result.locked is False
        assert db_session.get(Shop, shop.id).locked_at is None

        assert is_account_locked(shop.email) == (False, None)
        assert db_session.get(Shop, shop.id).account_status == "locked"

    def test_admin_lock_over_timed_lock_survives_expiry(self, db_session, shop):
        _fail(shop.email, MAX_FAILED_ATTEMPTS)
        set_account_status(shop.email, "locked")

        refreshed = db_session.get(Shop, shop.id)
        assert refreshed.locked_at is None

        assert is_account_locked(shop.email) == (False, None)
        assert db_session.get(Shop, shop.id).account_status == "locked"


class TestSuccessAndUnlock:

    def test_success_resets_counter(self, db_session, shop):
        _fail(shop.email, 3)

        record_successful_login(db_session.get(Shop, shop.id))

        refreshed = db_session.get(Shop, shop.id)
        assert refreshed.failed_login_attempts == 0
        assert refreshed.last_login_at is not None

    def test_unlock_account(self, db_session, shop):
        _fail(shop.email, MAX_FAILED_ATTEMPTS)

        unlocked = unlock_account(shop.email)

        assert unlocked.account_status == "active"
        assert unlocked.failed_login_attempts == 0
        assert is_account_locked(shop.email) == (False, None)

    def test_unlock_unknown_email(self, db_session):
        assert unlock_account("nobody@nowhere.test") is None

    def test_lockout_status_shape(self, db_session, shop):
        _fail(shop.email, 2)

        status = get_lockout_status(shop.email)

        assert status["locked"] is False
        assert status["failed_attempts"] == 2
        assert status["max_attempts"] == login_lockout_service.MAX_FAILED_ATTEMPTS
        assert status["locked_until"] is None
