from .tenancy import Store
from .auth import User, SessionToken
from .inventory import Category, Product, StockLog
from .customers import Customer
from .purchasing import Supplier, PurchaseOrder, PurchaseOrderItem
from .sales import Sale, SaleItem, SalePayment
from .expenses import Expense

__all__ = [
    'Store',
    'User', 'SessionToken',
    'Category', 'Product', 'StockLog',
    'Customer',
    'Supplier', 'PurchaseOrder', 'PurchaseOrderItem',
    'Sale', 'SaleItem', 'SalePayment',
    'Expense',
]
