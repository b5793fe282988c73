from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import generate_id, money_str

PROJECT_DEFAULT_STATUS = "active"

MILESTONE_PENDING = "pending"
MILESTONE_IN_PROGRESS = "in_progress"
MILESTONE_COMPLETED = "completed"
MILESTONE_STATUSES = (MILESTONE_PENDING, MILESTONE_IN_PROGRESS, MILESTONE_COMPLETED)

INVENTORY_STATUSES = ("pending", "ordered", "delivered", "used")

EXPENSE_CATEGORIES = (
    "materials",
    "labor",
    "equipment",
    "transportation",
    "permits",
    "utilities",
    "other",
)


class Project(db.Model):
    """
    Construction project tracked by a client.

    Owns milestones, inventory, expenses and progress images. Children are
    only ever removed together with their project.
    """
    __tablename__ = "projects"
    __table_args__ = (
        db.Index("ix_projects_client_created", "client_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    client_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(255), nullable=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    status = db.Column(db.String(32), nullable=False, default=PROJECT_DEFAULT_STATUS)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    milestones = db.relationship("Milestone", backref="project", lazy=True, cascade="all, delete-orphan")
    inventory = db.relationship("ProjectInventory", backref="project", lazy=True, cascade="all, delete-orphan")
    expenses = db.relationship("ProjectExpense", backref="project", lazy=True, cascade="all, delete-orphan")
    progress_images = db.relationship("ProgressImage", backref="project", lazy=True, cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "name": self.name,
            "description": self.description,
            "location": self.location,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Milestone(db.Model):
    """
    Project milestone.

    completed_at is a derived stamp: set when status becomes "completed",
    cleared when the milestone is reopened. Clients never write it.
    """
    __tablename__ = "milestones"

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    project_id = db.Column(db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=MILESTONE_PENDING)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "due_date": to_utc_z(self.due_date),
            "completed_at": to_utc_z(self.completed_at),
            "created_at": to_utc_z(self.created_at),
        }


class ProjectInventory(db.Model):
    """Material on hand or on order for a project."""
    __tablename__ = "project_inventory"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_project_inventory_quantity_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    project_id = db.Column(db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(32), nullable=False)  # e.g., "bags", "pieces", "meters"
    unit_cost = db.Column(db.Numeric(10, 2), nullable=True)
    # Derived: quantity * unit_cost
    total_cost = db.Column(db.Numeric(10, 2), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)
    delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "item_name": self.item_name,
            "description": self.description,
            "quantity": self.quantity,
            "unit": self.unit,
            "unit_cost": money_str(self.unit_cost),
            "total_cost": money_str(self.total_cost),
            "supplier": self.supplier,
            "delivery_date": to_utc_z(self.delivery_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class ProjectExpense(db.Model):
    """Money spent on a project."""
    __tablename__ = "project_expenses"
    __table_args__ = (
        db.Index("ix_project_expenses_project_paid", "project_id", "payment_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    project_id = db.Column(db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    description = db.Column(db.Text, nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    category = db.Column(db.String(32), nullable=False)
    payment_method = db.Column(db.String(32), nullable=True)  # cash, bank_transfer, check
    vendor = db.Column(db.String(255), nullable=True)
    receipt_number = db.Column(db.String(64), nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "description": self.description,
            "amount": money_str(self.amount),
            "category": self.category,
            "payment_method": self.payment_method,
            "vendor": self.vendor,
            "receipt_number": self.receipt_number,
            "payment_date": to_utc_z(self.payment_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class ProgressImage(db.Model):
    """Site photo attached to a project and optionally to one of its milestones."""
    __tablename__ = "progress_images"

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    project_id = db.Column(db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    milestone_id = db.Column(db.String(36), db.ForeignKey("milestones.id", ondelete="SET NULL"), nullable=True)

    image_url = db.Column(db.String(512), nullable=False)
    description = db.Column(db.Text, nullable=True)
    uploaded_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "milestone_id": self.milestone_id,
            "image_url": self.image_url,
            "description": self.description,
            "uploaded_by": self.uploaded_by,
            "created_at": to_utc_z(self.created_at),
        }
