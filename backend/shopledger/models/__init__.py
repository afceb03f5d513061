from .accounts import User, SessionToken
from .shops import Shop
from .catalog import Product
from .parties import Customer, Supplier
from .documents import DocumentSequence, Sale, SaleItem, Purchase, PurchaseItem
from .transactions import Transaction
from .notifications import Notification

__all__ = [
    'User', 'SessionToken',
    'Shop',
    'Product',
    'Customer', 'Supplier',
    'DocumentSequence', 'Sale', 'SaleItem', 'Purchase', 'PurchaseItem',
    'Transaction',
    'Notification',
]
