from .auth import User
from .inventory import Product
from .sales import Sale, SaleLine
from .security import SecurityEvent

__all__ = [
    'User',
    'Product',
    'Sale', 'SaleLine',
    'SecurityEvent',
]
