from .tenancy import Tenant
from .auth import User, Role, UserRole, Permission, RolePermission, SessionToken
from .inventory import Product, StockTransaction
from .customers import Customer
from .sales import Sale, SaleItem

__all__ = [
    'Tenant',
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
    'Product', 'StockTransaction',
    'Customer',
    'Sale', 'SaleItem',
]
