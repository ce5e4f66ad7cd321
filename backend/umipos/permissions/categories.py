# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    GENERAL = "GENERAL"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    CUSTOMERS = "CUSTOMERS"
    REPORTS = "REPORTS"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
