from .auth import User, SessionToken
from .security import SecurityEvent
from .catalog import Product
from .orders import CartItem, Order, OrderItem
from .projects import Project, Milestone, ProjectInventory, ProjectExpense, ProgressImage

__all__ = [
    'User', 'SessionToken', 'SecurityEvent',
    'Product',
    'CartItem', 'Order', 'OrderItem',
    'Project', 'Milestone', 'ProjectInventory', 'ProjectExpense', 'ProgressImage',
]
