from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from shopdesk.time_utils import to_utc_z


ACCOUNT_STATUSES = ("active", "pending", "frozen", "rejected", "locked")


class Shop(db.Model):
    """
    Shop account: the tenant that owns all business data.

    The account doubles as the sign-in identity (email/password or a
    federated provider). Lockout bookkeeping lives on the row itself:
    failed_login_attempts is read, incremented in Python and written back.

    locked_until is derived from locked_at + lock_duration_minutes so the
    expiry check is a plain wall-clock comparison.
    """
    __tablename__ = "shops"
    __table_args__ = (
        db.Index("ix_shops_status", "account_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Always stored lower-cased
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=True)  # Null for federated-only accounts

    shop_name = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    phone_numbers = db.Column(db.JSON, nullable=False, default=list)
    logo_url = db.Column(db.String(512), nullable=True)
    receipt_description = db.Column(db.Text, nullable=True)
    timezone = db.Column(db.String(64), nullable=False, default="UTC")

    auth_provider = db.Column(db.String(32), nullable=False, default="password")
    display_name = db.Column(db.String(255), nullable=True)
    photo_url = db.Column(db.String(512), nullable=True)

    account_status = db.Column(db.String(16), nullable=False, default="active")

    failed_login_attempts = db.Column(db.Integer, nullable=False, default=0)
    last_failed_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    lock_duration_minutes = db.Column(db.Integer, nullable=True)

    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_password_change = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def locked_until(self):
        if self.locked_at is None or not self.lock_duration_minutes:
            return None
        return self.locked_at + timedelta(minutes=self.lock_duration_minutes)

    def __repr__(self) -> str:
        return f"<Shop id={self.id} email={self.email!r} status={self.account_status!r}>"

    def details_snapshot(self) -> dict:
        """Shop header printed on every receipt."""
        return {
            "name": self.shop_name,
            "address": self.address,
            "phone": ", ".join(self.phone_numbers or []),
            "logo_url": self.logo_url or "",
            "receipt_description": self.receipt_description or "",
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "shop_name": self.shop_name,
            "address": self.address,
            "phone_numbers": list(self.phone_numbers or []),
            "logo_url": self.logo_url,
            "receipt_description": self.receipt_description,
            "timezone": self.timezone,
            "auth_provider": self.auth_provider,
            "display_name": self.display_name,
            "photo_url": self.photo_url,
            "account_status": self.account_status,
            "failed_login_attempts": self.failed_login_attempts,
            "locked_until": to_utc_z(self.locked_until),
            "lock_duration_minutes": self.lock_duration_minutes,
            "last_login_at": to_utc_z(self.last_login_at),
            "last_password_change": to_utc_z(self.last_password_change),
            "created_at": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Bearer session tokens for shop accounts.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout
    - 2-hour idle timeout
    - Revocable on logout or password change
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_shop_active", "shop_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    shop = db.relationship("Shop", backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
