# Overview: Declarative access policy, one entry per gated action.
# Each action is defined as:
#   (code, description, category, allowed roles, ownership required, public)
#
# - allowed roles: admin passes every role check implicitly and is never listed
# - ownership required: the actor must also own the resource (admin exempt)
# - public: callers without a principal are allowed

from .categories import ActionCategory

BUYER = "buyer"
SELLER = "seller"
CLIENT = "client"


# -- CATALOG --

CATALOG_ACTIONS = [
    (
        "VIEW_CATALOG",
        "Browse and search active products",
        ActionCategory.CATALOG,
        (BUYER, SELLER, CLIENT),
        False,
        True,
    ),
    (
        "VIEW_INACTIVE_PRODUCT",
        "Fetch a hidden product by id",
        ActionCategory.CATALOG,
        (SELLER,),
        True,
        False,
    ),
    (
        "CREATE_PRODUCT",
        "List a new product",
        ActionCategory.CATALOG,
        (SELLER,),
        False,
        False,
    ),
    (
        "UPDATE_PRODUCT",
        "Edit a product listing",
        ActionCategory.CATALOG,
        (SELLER,),
        True,
        False,
    ),
    (
        "DELETE_PRODUCT",
        "Hard delete a product listing",
        ActionCategory.CATALOG,
        (SELLER,),
        True,
        False,
    ),
    (
        "VIEW_SELLER_PRODUCTS",
        "List own products including hidden ones",
        ActionCategory.CATALOG,
        (SELLER,),
        False,
        False,
    ),
]


# -- CART --

CART_ACTIONS = [
    (
        "MANAGE_CART",
        "View and edit own cart",
        ActionCategory.CART,
        (BUYER, SELLER, CLIENT),
        True,
        False,
    ),
]


# -- ORDERS --

ORDER_ACTIONS = [
    (
        "PLACE_ORDER",
        "Place an order",
        ActionCategory.ORDERS,
        (BUYER, SELLER, CLIENT),
        False,
        False,
    ),
    (
        "VIEW_OWN_ORDERS",
        "List own orders",
        ActionCategory.ORDERS,
        (BUYER, SELLER, CLIENT),
        False,
        False,
    ),
    (
        "VIEW_ORDER",
        "View one order with its items",
        ActionCategory.ORDERS,
        (BUYER, SELLER, CLIENT),
        True,
        False,
    ),
    (
        "CANCEL_ORDER",
        "Cancel own order",
        ActionCategory.ORDERS,
        (BUYER, SELLER, CLIENT),
        True,
        False,
    ),
    (
        "UPDATE_ORDER_STATUS",
        "Move any order through its lifecycle",
        ActionCategory.ORDERS,
        (),
        False,
        False,
    ),
    (
        "VIEW_SELLER_ORDERS",
        "List orders containing own products",
        ActionCategory.ORDERS,
        (SELLER,),
        False,
        False,
    ),
]


# -- PROJECTS --

PROJECT_ACTIONS = [
    (
        "CREATE_PROJECT",
        "Start a project",
        ActionCategory.PROJECTS,
        (CLIENT,),
        False,
        False,
    ),
    (
        "VIEW_PROJECT",
        "View a project and its records",
        ActionCategory.PROJECTS,
        (BUYER, SELLER, CLIENT),
        True,
        False,
    ),
    (
        "UPDATE_PROJECT",
        "Edit project details",
        ActionCategory.PROJECTS,
        (CLIENT,),
        True,
        False,
    ),
    (
        "DELETE_PROJECT",
        "Delete a project and everything it owns",
        ActionCategory.PROJECTS,
        (CLIENT,),
        True,
        False,
    ),
    (
        "MANAGE_PROJECT_RECORDS",
        "Add or edit milestones, inventory, expenses and progress images",
        ActionCategory.PROJECTS,
        (CLIENT,),
        True,
        False,
    ),
    (
        "VIEW_OWN_PROJECTS",
        "List own projects",
        ActionCategory.PROJECTS,
        (BUYER, SELLER, CLIENT),
        False,
        False,
    ),
]


# -- ADMIN --

ADMIN_ACTIONS = [
    (
        "VIEW_ALL_PROJECTS",
        "List every project",
        ActionCategory.ADMIN,
        (),
        False,
        False,
    ),
    (
        "VIEW_USERS",
        "List user accounts",
        ActionCategory.ADMIN,
        (),
        False,
        False,
    ),
    (
        "VIEW_STATS",
        "View marketplace statistics",
        ActionCategory.ADMIN,
        (),
        False,
        False,
    ),
]


ACTION_DEFINITIONS = (
    CATALOG_ACTIONS
    + CART_ACTIONS
    + ORDER_ACTIONS
    + PROJECT_ACTIONS
    + ADMIN_ACTIONS
)
