# Overview: Service-layer operations for employees and HR analytics.

"""
HR records and reporting.

Payroll normalisation to a monthly figure:
- yearly  -> amount / 12
- hourly  -> amount * HOURS_PER_MONTH
- monthly -> amount as-is
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Employee, EmployeeDocument, PerformanceReview
from ..models.hr import DOCUMENT_TYPES
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_employee,
    validate_payload,
)

HOURS_PER_MONTH = 160
RECENT_HIRE_DAYS = 30
ANNIVERSARY_LOOKAHEAD_DAYS = 60

EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields={
        "employee_id", "first_name", "last_name", "email", "position", "department",
        "employment_type", "salary_amount", "pay_frequency", "status", "start_date",
        "manager_id", "leave_vacation", "leave_sick", "leave_personal",
    },
    required_on_create={"first_name", "last_name", "email", "department"},
)


class EmployeeNotFoundError(NotFoundError):
    pass


def _flatten_employee_payload(payload: dict) -> dict:
    """Accept the nested salary / leave_balance shapes used in responses."""
    if not isinstance(payload, dict):
        return payload
    data = dict(payload)
    salary = data.pop("salary", None)
    if isinstance(salary, dict):
        if "amount" in salary:
            data["salary_amount"] = salary["amount"]
        if "pay_frequency" in salary:
            data["pay_frequency"] = salary["pay_frequency"]
    leave = data.pop("leave_balance", None)
    if isinstance(leave, dict):
        for key in ("vacation", "sick", "personal"):
            if key in leave:
                data[f"leave_{key}"] = leave[key]
    return data


def _next_employee_code() -> str:
    highest = 0
    codes = db.session.query(Employee.employee_id).filter(Employee.employee_id.like("EMP%")).all()
    for (code,) in codes:
        suffix = code[3:]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"EMP{highest + 1:04d}"


def _check_unique(patch: dict, exclude_id: int | None = None) -> None:
    for field in ("employee_id", "email"):
        if field not in patch:
            continue
        query = db.session.query(Employee).filter(getattr(Employee, field) == patch[field])
        if exclude_id is not None:
            query = query.filter(Employee.id != exclude_id)
        if query.first():
            raise ConflictError("Employee ID or email already exists")


def _check_manager(manager_id, employee_id: int | None = None) -> None:
    if manager_id is None:
        return
    if employee_id is not None and manager_id == employee_id:
        raise ValidationError("An employee cannot be their own manager")
    if db.session.get(Employee, manager_id) is None:
        raise ValidationError(f"Manager not found: {manager_id}")


def get_employee(employee_pk: int) -> Employee:
    employee = db.session.get(Employee, employee_pk)
    if employee is None:
        raise EmployeeNotFoundError("Employee not found")
    return employee


def list_employees(*, department: str | None = None, status: str | None = None, page: int = 1, limit: int = 20) -> dict:
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    query = db.session.query(Employee)
    if department:
        query = query.filter(Employee.department == department)
    if status:
        query = query.filter(Employee.status == status)

    total = query.count()
    employees = (
        query.order_by(Employee.created_at.desc(), Employee.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "employees": [e.to_dict() for e in employees],
        "total_pages": (total + limit - 1) // limit,
        "current_page": page,
        "total": total,
    }


def create_employee(payload: dict) -> Employee:
    patch = validate_payload(
        model=Employee,
        payload=_flatten_employee_payload(payload),
        policy=EMPLOYEE_POLICY,
        partial=False,
    )
    enforce_rules_employee(patch)
    if not patch.get("employee_id"):
        patch["employee_id"] = _next_employee_code()
    _check_unique(patch)
    _check_manager(patch.get("manager_id"))

    employee = Employee(**patch)
    db.session.add(employee)
    db.session.commit()
    return employee


def update_employee(employee_pk: int, payload: dict) -> Employee:
    employee = get_employee(employee_pk)
    patch = validate_payload(
        model=Employee,
        payload=_flatten_employee_payload(payload),
        policy=EMPLOYEE_POLICY,
        partial=True,
    )
    enforce_rules_employee(patch)
    _check_unique(patch, exclude_id=employee.id)
    if "manager_id" in patch:
        _check_manager(patch["manager_id"], employee.id)

    for key, value in patch.items():
        setattr(employee, key, value)
    db.session.commit()
    return employee


def delete_employee(employee_pk: int) -> None:
    employee = get_employee(employee_pk)
    db.session.query(Employee).filter(Employee.manager_id == employee.id).update(
        {Employee.manager_id: None}, synchronize_session=False
    )
    db.session.delete(employee)
    db.session.commit()


def search_employees(*, q: str | None = None, department: str | None = None, status: str | None = None) -> list[Employee]:
    query = db.session.query(Employee)
    if department:
        query = query.filter(Employee.department == department)
    if status:
        query = query.filter(Employee.status == status)
    if q:
        pattern = f"%{q}%"
        query = query.filter(db.or_(
            Employee.first_name.ilike(pattern),
            Employee.last_name.ilike(pattern),
            Employee.email.ilike(pattern),
            Employee.employee_id.ilike(pattern),
            Employee.position.ilike(pattern),
        ))
    return query.order_by(Employee.first_name.asc()).limit(50).all()


def add_performance_review(employee_pk: int, *, rating, comments: str | None, reviewer_user_id: int | None) -> Employee:
    employee = get_employee(employee_pk)
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("rating must be an integer between 1 and 5")

    employee.performance.append(PerformanceReview(
        rating=rating,
        comments=comments,
        reviewed_by_user_id=reviewer_user_id,
        review_date=utcnow(),
    ))
    db.session.commit()
    return employee


def update_leave_balance(employee_pk: int, payload: dict) -> Employee:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    patch = {f"leave_{key}": payload[key] for key in ("vacation", "sick", "personal") if key in payload}
    if not patch:
        raise ValidationError("Provide at least one of: vacation, sick, personal")
    return update_employee(employee_pk, patch)


def add_document(employee_pk: int, *, name, doc_type: str | None, file_path) -> EmployeeDocument:
    employee = get_employee(employee_pk)
    if not isinstance(file_path, str) or not file_path.strip():
        raise ValidationError("file_path is required")
    doc_type = doc_type or "other"
    if doc_type not in DOCUMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(DOCUMENT_TYPES)}")

    document = EmployeeDocument(
        name=(name or file_path.rsplit("/", 1)[-1]).strip(),
        type=doc_type,
        file_path=file_path.strip(),
        upload_date=utcnow(),
    )
    employee.documents.append(document)
    db.session.commit()
    return document


def bulk_update_employees(employee_ids, update_data) -> int:
    if not isinstance(employee_ids, list) or not employee_ids:
        raise ValidationError("Employee IDs array is required")
    patch = validate_payload(
        model=Employee,
        payload=_flatten_employee_payload(update_data),
        policy=EMPLOYEE_POLICY,
        partial=True,
    )
    enforce_rules_employee(patch)
    if "employee_id" in patch or "email" in patch:
        raise ValidationError("employee_id and email cannot be bulk updated")
    if not patch:
        return 0

    modified = db.session.query(Employee).filter(Employee.id.in_(employee_ids)).update(
        patch, synchronize_session=False
    )
    db.session.commit()
    return modified


def employees_by_manager(manager_pk: int) -> list[Employee]:
    return db.session.query(Employee).filter(
        Employee.manager_id == manager_pk,
        Employee.status == "active",
    ).all()


def _next_anniversary(start: datetime, now: datetime) -> datetime:
    try:
        anniversary = start.replace(year=now.year)
    except ValueError:
        # Feb 29 start date in a non-leap year
        anniversary = start.replace(year=now.year, day=28)
    if anniversary < now:
        try:
            anniversary = anniversary.replace(year=now.year + 1)
        except ValueError:
            anniversary = anniversary.replace(year=now.year + 1, day=28)
    return anniversary


def monthly_salary(employee: Employee) -> float:
    if employee.pay_frequency == "yearly":
        return employee.salary_amount / 12
    if employee.pay_frequency == "hourly":
        return employee.salary_amount * HOURS_PER_MONTH
    return employee.salary_amount


def hr_analytics(now: datetime | None = None) -> dict:
    now = now or utcnow()
    active = Employee.status == "active"

    total_active = db.session.query(func.count(Employee.id)).filter(active).scalar() or 0
    inactive = db.session.query(func.count(Employee.id)).filter(Employee.status != "active").scalar() or 0

    department_rows = (
        db.session.query(Employee.department, func.count(Employee.id).label("count"))
        .filter(active)
        .group_by(Employee.department)
        .order_by(func.count(Employee.id).desc())
        .all()
    )
    employment_rows = (
        db.session.query(Employee.employment_type, func.count(Employee.id))
        .filter(active)
        .group_by(Employee.employment_type)
        .all()
    )
    salary_row = db.session.query(
        func.avg(Employee.salary_amount),
        func.min(Employee.salary_amount),
        func.max(Employee.salary_amount),
        func.sum(Employee.salary_amount),
    ).filter(active).one()
    average_salary, min_salary, max_salary, total_payroll = salary_row

    recent_hires = (
        db.session.query(Employee)
        .filter(active, Employee.start_date >= now - timedelta(days=RECENT_HIRE_DAYS))
        .order_by(Employee.start_date.desc())
        .limit(10)
        .all()
    )

    horizon = now + timedelta(days=ANNIVERSARY_LOOKAHEAD_DAYS)
    upcoming = []
    for employee in db.session.query(Employee).filter(active).all():
        anniversary = _next_anniversary(employee.start_date, now)
        if anniversary <= horizon:
            upcoming.append((anniversary, employee))
    upcoming.sort(key=lambda pair: pair[0])

    # Distribution of each active employee's most recent rating
    latest_ratings: dict[int, tuple[datetime, int]] = {}
    reviews = (
        db.session.query(PerformanceReview.employee_id, PerformanceReview.review_date, PerformanceReview.rating)
        .join(Employee, Employee.id == PerformanceReview.employee_id)
        .filter(active)
        .all()
    )
    for employee_pk, review_date, rating in reviews:
        current = latest_ratings.get(employee_pk)
        if current is None or review_date > current[0]:
            latest_ratings[employee_pk] = (review_date, rating)
    rating_counts: dict[int, int] = {}
    for _, rating in latest_ratings.values():
        rating_counts[rating] = rating_counts.get(rating, 0) + 1

    salary_stats = {}
    if total_active:
        salary_stats = {
            "average_salary": float(average_salary or 0),
            "min_salary": float(min_salary or 0),
            "max_salary": float(max_salary or 0),
            "total_payroll": float(total_payroll or 0),
        }

    return {
        "overview": {
            "total_employees": total_active,
            "active_employees": total_active,
            "inactive_employees": inactive,
            "total_payroll": salary_stats.get("total_payroll", 0),
            "average_salary": salary_stats.get("average_salary", 0),
        },
        "department_breakdown": [{"department": d, "count": c} for d, c in department_rows],
        "employment_type_breakdown": [{"employment_type": t, "count": c} for t, c in employment_rows],
        "salary_stats": salary_stats,
        "recent_hires": [e.to_dict() for e in recent_hires],
        "upcoming_anniversaries": [e.to_dict() for _, e in upcoming[:10]],
        "performance_stats": [
            {"rating": rating, "count": rating_counts[rating]} for rating in sorted(rating_counts)
        ],
    }


def department_stats() -> list[dict]:
    rows = (
        db.session.query(
            Employee.department,
            func.count(Employee.id),
            func.avg(Employee.salary_amount),
            func.sum(Employee.salary_amount),
            func.sum(db.case((Employee.employment_type == "full_time", 1), else_=0)),
            func.sum(db.case((Employee.employment_type == "part_time", 1), else_=0)),
        )
        .filter(Employee.status == "active")
        .group_by(Employee.department)
        .order_by(func.count(Employee.id).desc())
        .all()
    )
    return [
        {
            "department": department,
            "employee_count": int(count),
            "average_salary": round(float(avg or 0), 2),
            "total_salary": float(total or 0),
            "full_time_count": int(full_time or 0),
            "part_time_count": int(part_time or 0),
        }
        for department, count, avg, total, full_time, part_time in rows
    ]


def payroll_summary(*, department: str | None = None) -> dict:
    query = db.session.query(Employee).filter(Employee.status == "active")
    if department:
        query = query.filter(Employee.department == department)
    employees = query.all()

    total = 0.0
    by_department: dict[str, float] = {}
    by_employment_type: dict[str, float] = {}
    for employee in employees:
        monthly = monthly_salary(employee)
        total += monthly
        by_department[employee.department] = by_department.get(employee.department, 0) + monthly
        by_employment_type[employee.employment_type] = by_employment_type.get(employee.employment_type, 0) + monthly

    return {
        "total_monthly_payroll": round(total, 2),
        "department_payroll": by_department,
        "employment_type_payroll": by_employment_type,
        "employee_count": len(employees),
    }
