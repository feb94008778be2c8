from .inventory import Product, ProductSize
from .customers import Customer
from .workers import Worker
from .sales import Sale, SaleItem, PAYMENT_METHODS

__all__ = [
    'Product', 'ProductSize',
    'Customer',
    'Worker',
    'Sale', 'SaleItem', 'PAYMENT_METHODS',
]
