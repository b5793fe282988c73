# Overview: Action category constants for grouping related policies.


class ActionCategory:
    """Action categories for organization and admin display."""
    CATALOG = "CATALOG"
    CART = "CART"
    ORDERS = "ORDERS"
    PROJECTS = "PROJECTS"
    ADMIN = "ADMIN"
