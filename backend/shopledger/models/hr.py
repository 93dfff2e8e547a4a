from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

EMPLOYMENT_TYPES = ("full_time", "part_time", "contract", "intern")
PAY_FREQUENCIES = ("yearly", "monthly", "hourly")
EMPLOYEE_STATUSES = ("active", "inactive", "terminated", "on_leave")
DOCUMENT_TYPES = ("contract", "id", "certificate", "review", "other")


class Employee(db.Model):
    """
    Employee record for HR reporting.

    Peripheral to the order flow; kept for the HR analytics screens, which
    reuse the same grouping/summing patterns as the cash-flow reports.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("employee_id", name="uq_employees_employee_id"),
        db.UniqueConstraint("email", name="uq_employees_email"),
        db.Index("ix_employees_department_status", "department", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable code (e.g., "EMP0001")
    employee_id = db.Column(db.String(32), nullable=False)

    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    position = db.Column(db.String(120), nullable=True)
    department = db.Column(db.String(120), nullable=False)
    employment_type = db.Column(db.String(16), nullable=False, default="full_time")

    salary_amount = db.Column(db.Float, nullable=False, default=0)
    pay_frequency = db.Column(db.String(16), nullable=False, default="yearly")

    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    manager_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    # Leave balances in days
    leave_vacation = db.Column(db.Float, nullable=False, default=0)
    leave_sick = db.Column(db.Float, nullable=False, default=0)
    leave_personal = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    manager = db.relationship("Employee", remote_side=[id], backref=db.backref("reports", lazy=True))
    performance = db.relationship(
        "PerformanceReview",
        foreign_keys="PerformanceReview.employee_id",
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="PerformanceReview.review_date",
        lazy="selectin",
    )
    documents = db.relationship(
        "EmployeeDocument",
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="EmployeeDocument.upload_date",
        lazy="selectin",
    )

    def manager_summary(self) -> dict | None:
        if self.manager is None:
            return None
        return {
            "id": self.manager.id,
            "employee_id": self.manager.employee_id,
            "first_name": self.manager.first_name,
            "last_name": self.manager.last_name,
            "position": self.manager.position,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "position": self.position,
            "department": self.department,
            "employment_type": self.employment_type,
            "salary": {"amount": self.salary_amount, "pay_frequency": self.pay_frequency},
            "status": self.status,
            "start_date": to_utc_z(self.start_date),
            "manager_id": self.manager_id,
            "manager": self.manager_summary(),
            "leave_balance": {
                "vacation": self.leave_vacation,
                "sick": self.leave_sick,
                "personal": self.leave_personal,
            },
            "performance": [review.to_dict() for review in self.performance],
            "documents": [doc.to_dict() for doc in self.documents],
            "created_at": to_utc_z(self.created_at),
        }


class PerformanceReview(db.Model):
    __tablename__ = "performance_reviews"
    __table_args__ = (
        db.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_performance_rating_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    comments = db.Column(db.Text, nullable=True)
    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    review_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    employee = db.relationship("Employee", foreign_keys=[employee_id], back_populates="performance")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "rating": self.rating,
            "comments": self.comments,
            "reviewed_by_user_id": self.reviewed_by_user_id,
            "review_date": to_utc_z(self.review_date),
        }


class EmployeeDocument(db.Model):
    """Document metadata only; file storage happens outside this service."""
    __tablename__ = "employee_documents"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(32), nullable=False, default="other")
    file_path = db.Column(db.String(512), nullable=False)
    upload_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    employee = db.relationship("Employee", back_populates="documents")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "file_path": self.file_path,
            "upload_date": to_utc_z(self.upload_date),
        }
