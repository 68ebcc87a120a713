from .tenancy import User, Employee
from .inventory import Product, Stock, StockHistory
from .sales import Sale, SaleItem, SaleCodeSequence
from .membership import MembershipState, MembershipTopup
from .finance import FinanceEntry

__all__ = [
    'User', 'Employee',
    'Product', 'Stock', 'StockHistory',
    'Sale', 'SaleItem', 'SaleCodeSequence',
    'MembershipState', 'MembershipTopup',
    'FinanceEntry',
]
