from .auth import User, SessionToken
from .cash import CashRecord
from .finance import Expense, ExtraIncome, VisitPayment
from .inventory import Product, InventoryLog, Sale, SaleLine

__all__ = [
    'User', 'SessionToken',
    'CashRecord',
    'Expense', 'ExtraIncome', 'VisitPayment',
    'Product', 'InventoryLog', 'Sale', 'SaleLine',
]
