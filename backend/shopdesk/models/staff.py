from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z, to_iso_date


ATTENDANCE_STATUSES = ("present", "absent", "half-day", "leave")


class Employee(db.Model):
    """Shop employee. Salary is the monthly base in cents."""
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("ix_employees_shop_name", "shop_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    position = db.Column(db.String(120), nullable=False)
    contact = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    joining_date = db.Column(db.Date, nullable=False)
    salary_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("employees", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "position": self.position,
            "contact": self.contact,
            "email": self.email,
            "address": self.address,
            "joining_date": to_iso_date(self.joining_date),
            "salary_cents": self.salary_cents,
            "created_at": to_utc_z(self.created_at),
        }


class AttendanceRecord(db.Model):
    """
    One attendance mark per employee per calendar day.

    Marking the same day again overwrites the status.
    """
    __tablename__ = "attendance"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
        db.Index("ix_attendance_shop_date", "shop_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    employee = db.relationship(
        "Employee",
        backref=db.backref("attendance_records", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "date": to_iso_date(self.date),
            "status": self.status,
            "notes": self.notes,
        }


class SalaryPayment(db.Model):
    __tablename__ = "salary_payments"
    __table_args__ = (
        db.Index("ix_salary_payments_shop_period", "shop_id", "period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    period = db.Column(db.String(7), nullable=False)  # YYYY-MM
    amount_cents = db.Column(db.Integer, nullable=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    employee = db.relationship(
        "Employee",
        backref=db.backref("salary_payments", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "employee_id": self.employee_id,
            "period": self.period,
            "amount_cents": self.amount_cents,
            "paid_at": to_utc_z(self.paid_at),
            "notes": self.notes,
        }
