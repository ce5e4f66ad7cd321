# Overview: Default role definitions and their permission sets.

from .helpers import get_all_permission_codes


# (name, description)
DEFAULT_ROLES = [
    ("TenantAdmin", "Full access within the tenant"),
    ("Pharmacist", "Dispensing, stock control and sales"),
    ("Cashier", "Point-of-sale only"),
    ("Operations", "Stock control and sales back office"),
]


DEFAULT_ROLE_PERMISSIONS = {
    "TenantAdmin": [
        code for code in get_all_permission_codes() if code != "SYSTEM_ADMIN"
    ],
    "Pharmacist": [
        "VIEW_DASHBOARD",
        "VIEW_INVENTORY",
        "MANAGE_PRODUCTS",
        "ADJUST_STOCK",
        "VIEW_STOCK_HISTORY",
        "LOW_STOCK_ALERT",
        "VIEW_SALES",
        "CREATE_SALE",
        "VIEW_CUSTOMERS",
        "MANAGE_CUSTOMERS",
        "VIEW_REPORTS",
    ],
    "Cashier": [
        "VIEW_DASHBOARD",
        "VIEW_INVENTORY",
        "VIEW_SALES",
        "CREATE_SALE",
        "VIEW_CUSTOMERS",
    ],
    "Operations": [
        "VIEW_DASHBOARD",
        "VIEW_INVENTORY",
        "MANAGE_PRODUCTS",
        "ADJUST_STOCK",
        "VIEW_STOCK_HISTORY",
        "LOW_STOCK_ALERT",
        "VIEW_SALES",
        "CREATE_SALE",
        "VIEW_CUSTOMERS",
        "VIEW_REPORTS",
    ],
}
