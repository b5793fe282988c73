# Overview: On-demand aggregates over a project's records.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func

from ..extensions import db
from ..models import Milestone, ProgressImage, ProjectExpense, ProjectInventory
from ..models.common import money_str, quantize_money
from ..models.projects import MILESTONE_COMPLETED, MILESTONE_STATUSES
from . import project_service
from .permission_service import Principal


def completion_percentage(completed: int, total: int) -> int:
    """
    round(100 * completed / total), halves rounded up; 0 when total is 0.
    """
    if total <= 0:
        return 0
    pct = (Decimal(100) * completed / total).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(pct)


def milestone_counts(project_id: str) -> dict[str, int]:
    rows = (
        db.session.query(Milestone.status, func.count(Milestone.id))
        .filter(Milestone.project_id == project_id)
        .group_by(Milestone.status)
        .all()
    )
    counts = {status: 0 for status in MILESTONE_STATUSES}
    counts.update({status: count for status, count in rows})
    return counts


def project_completion(project_id: str) -> int:
    counts = milestone_counts(project_id)
    return completion_percentage(counts[MILESTONE_COMPLETED], sum(counts.values()))


def total_expenses(project_id: str) -> Decimal:
    """Sum of every expense amount, computed from the rows each call."""
    total = (
        db.session.query(func.coalesce(func.sum(ProjectExpense.amount), 0))
        .filter(ProjectExpense.project_id == project_id)
        .scalar()
    )
    return quantize_money(str(total))


def expenses_by_category(project_id: str) -> dict[str, str]:
    rows = (
        db.session.query(ProjectExpense.category, func.sum(ProjectExpense.amount))
        .filter(ProjectExpense.project_id == project_id)
        .group_by(ProjectExpense.category)
        .order_by(ProjectExpense.category.asc())
        .all()
    )
    return {category: money_str(quantize_money(str(amount))) for category, amount in rows}


def inventory_value(project_id: str) -> Decimal:
    total = (
        db.session.query(func.coalesce(func.sum(ProjectInventory.total_cost), 0))
        .filter(ProjectInventory.project_id == project_id)
        .scalar()
    )
    return quantize_money(str(total))


def project_summary(principal: Principal, project_id: str) -> dict:
    project = project_service.get_project(principal, project_id)
    counts = milestone_counts(project.id)
    total_milestones = sum(counts.values())

    image_count = (
        db.session.query(func.count(ProgressImage.id))
        .filter(ProgressImage.project_id == project.id)
        .scalar()
    )

    return {
        "project": project.to_dict(),
        "completion_percentage": completion_percentage(counts[MILESTONE_COMPLETED], total_milestones),
        "milestones": {"total": total_milestones, **counts},
        "total_expenses": money_str(total_expenses(project.id)),
        "expenses_by_category": expenses_by_category(project.id),
        "inventory_value": money_str(inventory_value(project.id)),
        "progress_image_count": image_count,
    }
