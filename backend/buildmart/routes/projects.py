# Overview: Flask API routes for the project ledger; parses input and returns JSON responses.

"""
Project routes.

Every project-scoped route checks ownership through the parent project:
clients see and edit only their own projects, admins see all of them.
Milestones, inventory, expenses and images have no delete route; they go
away with their project.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import current_principal, require_auth, require_permission
from ..errors import BuildmartError
from ..models import Milestone, Project, ProjectExpense, ProjectInventory
from ..responses import internal_error, service_error
from ..services import file_storage_service, progress_service, project_service
from ..validation import (
    ModelValidationPolicy,
    enforce_date_range,
    enforce_rules_expense,
    enforce_rules_inventory,
    enforce_rules_milestone,
    validate_payload,
)

PROJECT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "location", "start_date", "end_date", "status"},
    required_on_create={"name"},
    aliases={"startDate": "start_date", "endDate": "end_date"},
)

# completed_at is not writable; it follows status
MILESTONE_POLICY = ModelValidationPolicy(
    writable_fields={"title", "description", "status", "due_date"},
    required_on_create={"title"},
    aliases={"dueDate": "due_date", "completedAt": "completed_at"},
)

INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={
        "item_name", "description", "quantity", "unit", "unit_cost",
        "supplier", "delivery_date", "status",
    },
    required_on_create={"item_name", "unit"},
    aliases={
        "itemName": "item_name",
        "unitCost": "unit_cost",
        "totalCost": "total_cost",
        "deliveryDate": "delivery_date",
    },
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={
        "description", "amount", "category", "payment_method", "vendor",
        "receipt_number", "payment_date", "notes",
    },
    required_on_create={"description", "amount", "category", "payment_date"},
    aliases={
        "paymentMethod": "payment_method",
        "receiptNumber": "receipt_number",
        "paymentDate": "payment_date",
    },
)

projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")


def _json() -> dict:
    return request.get_json(silent=True) or {}


# -- projects --

@projects_bp.get("")
@require_auth
def list_projects_route():
    """Admins get every project, everyone else their own."""
    try:
        projects = project_service.list_projects(current_principal())
        return jsonify([p.to_dict() for p in projects]), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch projects")


@projects_bp.post("")
@require_auth
@require_permission("CREATE_PROJECT")
def create_project_route():
    try:
        patch = validate_payload(model=Project, payload=_json(), policy=PROJECT_POLICY, partial=False)
        enforce_date_range(patch, "start_date", "end_date")
        project = project_service.create_project(current_principal(), patch=patch)
        return jsonify(project.to_dict()), 201
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to create project")


@projects_bp.get("/<project_id>")
@require_auth
@require_permission("VIEW_PROJECT")
def get_project_route(project_id: str):
    try:
        project = project_service.get_project(current_principal(), project_id)
        return jsonify(project.to_dict()), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch project")


@projects_bp.put("/<project_id>")
@require_auth
@require_permission("UPDATE_PROJECT")
def update_project_route(project_id: str):
    try:
        patch = validate_payload(model=Project, payload=_json(), policy=PROJECT_POLICY, partial=True)
        project = project_service.update_project(current_principal(), project_id, patch=patch)
        return jsonify(project.to_dict()), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to update project")


@projects_bp.delete("/<project_id>")
@require_auth
@require_permission("DELETE_PROJECT")
def delete_project_route(project_id: str):
    """Deletes the project together with all of its records."""
    try:
        project_service.delete_project(current_principal(), project_id)
        current_app.logger.info("Project %s deleted", project_id)
        return "", 204
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to delete project")


@projects_bp.get("/<project_id>/summary")
@require_auth
@require_permission("VIEW_PROJECT")
def project_summary_route(project_id: str):
    """Completion percentage, milestone counts and expense totals."""
    try:
        return jsonify(progress_service.project_summary(current_principal(), project_id)), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to build project summary")


# -- milestones --

@projects_bp.get("/<project_id>/milestones")
@require_auth
@require_permission("VIEW_PROJECT")
def list_milestones_route(project_id: str):
    try:
        milestones = project_service.list_milestones(current_principal(), project_id)
        return jsonify([m.to_dict() for m in milestones]), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch milestones")


@projects_bp.post("/<project_id>/milestones")
@require_auth
@require_permission("MANAGE_PROJECT_RECORDS")
def create_milestone_route(project_id: str):
    try:
        patch = validate_payload(model=Milestone, payload=_json(), policy=MILESTONE_POLICY, partial=False)
        enforce_rules_milestone(patch)
        milestone = project_service.create_milestone(current_principal(), project_id, patch=patch)
        return jsonify(milestone.to_dict()), 201
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to create milestone")


@projects_bp.put("/<project_id>/milestones/<milestone_id>")
@require_auth
@require_permission("MANAGE_PROJECT_RECORDS")
def update_milestone_route(project_id: str, milestone_id: str):
    try:
        patch = validate_payload(model=Milestone, payload=_json(), policy=MILESTONE_POLICY, partial=True)
        enforce_rules_milestone(patch)
        milestone = project_service.update_milestone(current_principal(), project_id, milestone_id, patch=patch)
        return jsonify(milestone.to_dict()), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to update milestone")


# -- inventory --

@projects_bp.get("/<project_id>/inventory")
@require_auth
@require_permission("VIEW_PROJECT")
def list_inventory_route(project_id: str):
    try:
        items = project_service.list_inventory(current_principal(), project_id)
        return jsonify([i.to_dict() for i in items]), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch inventory")


@projects_bp.post("/<project_id>/inventory")
@require_auth
@require_permission("MANAGE_PROJECT_RECORDS")
def create_inventory_route(project_id: str):
    try:
        patch = validate_payload(model=ProjectInventory, payload=_json(), policy=INVENTORY_POLICY, partial=False)
        enforce_rules_inventory(patch)
        item = project_service.create_inventory_item(current_principal(), project_id, patch=patch)
        return jsonify(item.to_dict()), 201
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to create inventory item")


@projects_bp.put("/<project_id>/inventory/<item_id>")
@require_auth
@require_permission("MANAGE_PROJECT_RECORDS")
def update_inventory_route(project_id: str, item_id: str):
    try:
        patch = validate_payload(model=ProjectInventory, payload=_json(), policy=INVENTORY_POLICY, partial=True)
        enforce_rules_inventory(patch)
        item = project_service.update_inventory_item(current_principal(), project_id, item_id, patch=patch)
        return jsonify(item.to_dict()), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to update inventory item")


# -- expenses --

@projects_bp.get("/<project_id>/expenses")
@require_auth
@require_permission("VIEW_PROJECT")
def list_expenses_route(project_id: str):
    try:
        principal = current_principal()
        expenses = project_service.list_expenses(principal, project_id)
        return jsonify({
            "items": [e.to_dict() for e in expenses],
            "total": str(progress_service.total_expenses(project_id)),
        }), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch expenses")


@projects_bp.post("/<project_id>/expenses")
@require_auth
@require_permission("MANAGE_PROJECT_RECORDS")
def create_expense_route(project_id: str):
    try:
        patch = validate_payload(model=ProjectExpense, payload=_json(), policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)
        expense = project_service.create_expense(current_principal(), project_id, patch=patch)
        return jsonify(expense.to_dict()), 201
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to create expense")


# -- progress images --

@projects_bp.get("/<project_id>/images")
@require_auth
@require_permission("VIEW_PROJECT")
def list_images_route(project_id: str):
    try:
        images = project_service.list_progress_images(current_principal(), project_id)
        return jsonify([i.to_dict() for i in images]), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch images")


@projects_bp.post("/<project_id>/images")
@require_auth
@require_permission("MANAGE_PROJECT_RECORDS")
def upload_image_route(project_id: str):
    """
    Multipart upload.

    Form fields: image (file, required), milestoneId, description.
    """
    try:
        principal = current_principal()
        # Ownership before touching the disk
        project_service.project_for_records(principal, project_id)

        with file_storage_service.staged_upload(request.files.get("image"), required=True) as image_url:
            image = project_service.add_progress_image(
                principal,
                project_id,
                image_url=image_url,
                milestone_id=request.form.get("milestoneId"),
                description=request.form.get("description"),
            )
        return jsonify(image.to_dict()), 201
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to upload image")
