# Overview: Project ledger; projects and the records they own.

"""
Project Ledger

A project belongs to one client (client_id). Its milestones, inventory,
expenses and progress images are reachable only through it: every record
operation loads the parent project first and checks ownership against
project.client_id. Children are never deleted on their own; deleting the
project removes all of them.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Milestone, ProgressImage, Project, ProjectExpense, ProjectInventory
from ..models.common import quantize_money
from ..models.projects import MILESTONE_COMPLETED
from ..time_utils import utcnow
from . import permission_service
from .permission_service import Principal

PROJECT_MUTABLE_FIELDS = {"name", "description", "location", "start_date", "end_date", "status"}
MILESTONE_MUTABLE_FIELDS = {"title", "description", "status", "due_date"}
INVENTORY_MUTABLE_FIELDS = {
    "item_name", "description", "quantity", "unit", "unit_cost",
    "supplier", "delivery_date", "status",
}
EXPENSE_MUTABLE_FIELDS = {
    "description", "amount", "category", "payment_method", "vendor",
    "receipt_number", "payment_date", "notes",
}


def _apply(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k in allowed:
            setattr(obj, k, v)


# -- projects --

def list_projects(principal: Principal) -> list[Project]:
    """Admins see every project; everyone else sees their own."""
    query = db.session.query(Project)
    if not permission_service.authorize(principal, "VIEW_ALL_PROJECTS").allowed:
        permission_service.require(principal, "VIEW_OWN_PROJECTS")
        query = query.filter(Project.client_id == principal.id)
    return query.order_by(Project.created_at.desc(), Project.id.desc()).all()


def _load_project(principal: Principal, project_id: str, action: str) -> Project:
    permission_service.require(principal, action)
    project = db.session.query(Project).filter_by(id=project_id).first()
    if project is None:
        raise NotFoundError("Project not found")
    permission_service.require(principal, action, owner_id=project.client_id)
    return project


def get_project(principal: Principal, project_id: str) -> Project:
    return _load_project(principal, project_id, "VIEW_PROJECT")


def create_project(principal: Principal, *, patch: dict) -> Project:
    permission_service.require(principal, "CREATE_PROJECT")
    project = Project(client_id=principal.id)
    _apply(project, patch, PROJECT_MUTABLE_FIELDS)
    if not project.status:
        project.status = "active"
    db.session.add(project)
    db.session.commit()
    return project


def update_project(principal: Principal, project_id: str, *, patch: dict) -> Project:
    project = _load_project(principal, project_id, "UPDATE_PROJECT")
    start = patch.get("start_date", project.start_date)
    end = patch.get("end_date", project.end_date)
    if start is not None and end is not None and end < start:
        raise ValidationError("end_date must not be before start_date")
    _apply(project, patch, PROJECT_MUTABLE_FIELDS)
    db.session.commit()
    return project


def delete_project(principal: Principal, project_id: str) -> None:
    """Removes the project and, by cascade, every record it owns."""
    project = _load_project(principal, project_id, "DELETE_PROJECT")
    db.session.delete(project)
    db.session.commit()


def project_for_records(principal: Principal, project_id: str) -> Project:
    """Parent project of a record write, ownership checked."""
    return _load_project(principal, project_id, "MANAGE_PROJECT_RECORDS")


# -- milestones --

def list_milestones(principal: Principal, project_id: str) -> list[Milestone]:
    get_project(principal, project_id)
    return (
        db.session.query(Milestone)
        .filter_by(project_id=project_id)
        .order_by(Milestone.created_at.desc(), Milestone.id.desc())
        .all()
    )


def _stamp_completion(milestone: Milestone, previous_status: str | None) -> None:
    if milestone.status == MILESTONE_COMPLETED and previous_status != MILESTONE_COMPLETED:
        milestone.completed_at = utcnow()
    elif milestone.status != MILESTONE_COMPLETED:
        milestone.completed_at = None


def create_milestone(principal: Principal, project_id: str, *, patch: dict) -> Milestone:
    project = project_for_records(principal, project_id)
    milestone = Milestone(project_id=project.id)
    _apply(milestone, patch, MILESTONE_MUTABLE_FIELDS)
    if not milestone.status:
        milestone.status = "pending"
    _stamp_completion(milestone, None)
    db.session.add(milestone)
    db.session.commit()
    return milestone


def _load_child(model, principal: Principal, project_id: str, record_id: str, label: str):
    project = project_for_records(principal, project_id)
    record = db.session.query(model).filter_by(id=record_id, project_id=project.id).first()
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


def update_milestone(principal: Principal, project_id: str, milestone_id: str, *, patch: dict) -> Milestone:
    """completed_at follows status; it is never taken from the patch."""
    milestone = _load_child(Milestone, principal, project_id, milestone_id, "Milestone")
    previous_status = milestone.status
    _apply(milestone, patch, MILESTONE_MUTABLE_FIELDS)
    _stamp_completion(milestone, previous_status)
    db.session.commit()
    return milestone


# -- inventory --

def _recompute_total_cost(item: ProjectInventory) -> None:
    if item.unit_cost is None:
        item.total_cost = None
    else:
        item.total_cost = quantize_money(item.unit_cost * (item.quantity or 0))


def list_inventory(principal: Principal, project_id: str) -> list[ProjectInventory]:
    get_project(principal, project_id)
    return (
        db.session.query(ProjectInventory)
        .filter_by(project_id=project_id)
        .order_by(ProjectInventory.created_at.desc(), ProjectInventory.id.desc())
        .all()
    )


def create_inventory_item(principal: Principal, project_id: str, *, patch: dict) -> ProjectInventory:
    project = project_for_records(principal, project_id)
    item = ProjectInventory(project_id=project.id, quantity=0, status="pending")
    _apply(item, patch, INVENTORY_MUTABLE_FIELDS)
    _recompute_total_cost(item)
    db.session.add(item)
    db.session.commit()
    return item


def update_inventory_item(principal: Principal, project_id: str, item_id: str, *, patch: dict) -> ProjectInventory:
    item = _load_child(ProjectInventory, principal, project_id, item_id, "Inventory item")
    _apply(item, patch, INVENTORY_MUTABLE_FIELDS)
    _recompute_total_cost(item)
    db.session.commit()
    return item


# -- expenses --

def list_expenses(principal: Principal, project_id: str) -> list[ProjectExpense]:
    get_project(principal, project_id)
    return (
        db.session.query(ProjectExpense)
        .filter_by(project_id=project_id)
        .order_by(ProjectExpense.payment_date.desc(), ProjectExpense.created_at.desc())
        .all()
    )


def create_expense(principal: Principal, project_id: str, *, patch: dict) -> ProjectExpense:
    project = project_for_records(principal, project_id)
    expense = ProjectExpense(project_id=project.id)
    _apply(expense, patch, EXPENSE_MUTABLE_FIELDS)
    db.session.add(expense)
    db.session.commit()
    return expense


# -- progress images --

def list_progress_images(principal: Principal, project_id: str) -> list[ProgressImage]:
    get_project(principal, project_id)
    return (
        db.session.query(ProgressImage)
        .filter_by(project_id=project_id)
        .order_by(ProgressImage.created_at.desc(), ProgressImage.id.desc())
        .all()
    )


def add_progress_image(
    principal: Principal,
    project_id: str,
    *,
    image_url: str,
    milestone_id: str | None = None,
    description: str | None = None,
) -> ProgressImage:
    """
    Record an already stored image against a project.

    milestone_id, when given, must name a milestone of the same project.
    """
    project = project_for_records(principal, project_id)

    milestone_id = (milestone_id or "").strip() or None
    if milestone_id is not None:
        exists = db.session.query(Milestone.id).filter_by(id=milestone_id, project_id=project.id).first()
        if exists is None:
            raise ValidationError("milestoneId does not belong to this project")

    image = ProgressImage(
        project_id=project.id,
        milestone_id=milestone_id,
        image_url=image_url,
        description=(description or "").strip(),
        uploaded_by=principal.id,
    )
    db.session.add(image)
    db.session.commit()
    return image
