# Overview: Admin aggregate statistics.

from __future__ import annotations


from sqlalchemy import func

from ..extensions import db
from ..models import Order, Product, Project, User
from ..models.auth import ROLES
from ..models.common import money_str, quantize_money
from ..models.orders import ORDER_CANCELLED
from . import permission_service
from .permission_service import Principal


def list_users(principal: Principal) -> list[User]:
    permission_service.require(principal, "VIEW_USERS")
    return db.session.query(User).order_by(User.created_at.desc()).all()


def marketplace_stats(principal: Principal) -> dict:
    permission_service.require(principal, "VIEW_STATS")

    role_rows = db.session.query(User.role, func.count(User.id)).group_by(User.role).all()
    users_by_role = {role: 0 for role in ROLES}
    users_by_role.update({role: count for role, count in role_rows})

    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total), 0))
        .filter(Order.status != ORDER_CANCELLED)
        .scalar()
    )

    return {
        "totalUsers": sum(users_by_role.values()),
        "totalBuyers": users_by_role["buyer"],
        "totalSellers": users_by_role["seller"],
        "totalClients": users_by_role["client"],
        "totalAdmins": users_by_role["admin"],
        "totalProducts": db.session.query(func.count(Product.id)).filter(Product.is_active.is_(True)).scalar(),
        "totalProjects": db.session.query(func.count(Project.id)).scalar(),
        "totalOrders": db.session.query(func.count(Order.id)).scalar(),
        "revenue": money_str(quantize_money(str(revenue))),
    }
