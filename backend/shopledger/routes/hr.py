# Overview: Flask API routes for HR operations; parses input and returns JSON responses.

"""Employee records, reviews, leave and HR analytics. Admin only (MANAGE_EMPLOYEES)."""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..services import hr_service
from ..validation import ValidationError, ConflictError, NotFoundError


hr_bp = Blueprint("hr", __name__, url_prefix="/api/hr")


def _handle(fn, *args, success_status=200, **kwargs):
    try:
        return jsonify(fn(*args, **kwargs)), success_status
    except (ValidationError, ConflictError, NotFoundError) as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("HR request failed: %s", request.path)
        return jsonify({"error": "Internal server error"}), 500


@hr_bp.get("/employees")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def list_employees_route():
    """Query params: department, status, page (default 1), limit (default 20)."""
    return _handle(
        hr_service.list_employees,
        department=request.args.get("department"),
        status=request.args.get("status"),
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 20, type=int),
    )


@hr_bp.get("/employees/search")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def search_employees_route():
    def search():
        employees = hr_service.search_employees(
            q=request.args.get("q"),
            department=request.args.get("department"),
            status=request.args.get("status"),
        )
        return {"employees": [e.to_dict() for e in employees]}
    return _handle(search)


@hr_bp.get("/employees/<int:employee_id>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def get_employee_route(employee_id: int):
    return _handle(lambda: hr_service.get_employee(employee_id).to_dict())


@hr_bp.post("/employees")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def create_employee_route():
    payload = request.get_json(silent=True) or {}
    return _handle(lambda: hr_service.create_employee(payload).to_dict(), success_status=201)


@hr_bp.put("/employees/<int:employee_id>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def update_employee_route(employee_id: int):
    payload = request.get_json(silent=True) or {}
    return _handle(lambda: hr_service.update_employee(employee_id, payload).to_dict())


@hr_bp.delete("/employees/<int:employee_id>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def delete_employee_route(employee_id: int):
    def delete():
        hr_service.delete_employee(employee_id)
        return {"message": "Employee deleted successfully"}
    return _handle(delete)


@hr_bp.post("/employees/<int:employee_id>/performance")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def add_performance_review_route(employee_id: int):
    """Body: {"rating": 1-5, "comments"?}. The reviewer is the caller."""
    payload = request.get_json(silent=True) or {}
    return _handle(lambda: hr_service.add_performance_review(
        employee_id,
        rating=payload.get("rating"),
        comments=payload.get("comments"),
        reviewer_user_id=g.current_user.id,
    ).to_dict())


@hr_bp.put("/employees/<int:employee_id>/leave")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def update_leave_balance_route(employee_id: int):
    payload = request.get_json(silent=True) or {}
    return _handle(lambda: hr_service.update_leave_balance(employee_id, payload).to_dict())


@hr_bp.post("/employees/<int:employee_id>/documents")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def add_document_route(employee_id: int):
    """Records document metadata; the file itself lives elsewhere."""
    payload = request.get_json(silent=True) or {}
    return _handle(
        lambda: hr_service.add_document(
            employee_id,
            name=payload.get("name"),
            doc_type=payload.get("type"),
            file_path=payload.get("file_path"),
        ).to_dict(),
        success_status=201,
    )


@hr_bp.put("/employees/bulk")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def bulk_update_route():
    """Body: {"employee_ids": [...], "update_data": {...}}"""
    payload = request.get_json(silent=True) or {}

    def bulk():
        modified = hr_service.bulk_update_employees(payload.get("employee_ids"), payload.get("update_data"))
        return {"message": f"{modified} employees updated successfully", "modified_count": modified}
    return _handle(bulk)


@hr_bp.get("/employees/manager/<int:manager_id>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def employees_by_manager_route(manager_id: int):
    return _handle(lambda: {
        "employees": [e.to_dict() for e in hr_service.employees_by_manager(manager_id)]
    })


@hr_bp.get("/analytics")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def analytics_route():
    return _handle(hr_service.hr_analytics)


@hr_bp.get("/departments/stats")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def department_stats_route():
    return _handle(lambda: {"departments": hr_service.department_stats()})


@hr_bp.get("/payroll/summary")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
def payroll_summary_route():
    return _handle(hr_service.payroll_summary, department=request.args.get("department"))
