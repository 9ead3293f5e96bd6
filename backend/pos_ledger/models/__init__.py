from .inventory import Product, new_id
from .sales import Sale, SaleItem
from .ledger import LedgerEvent

__all__ = [
    'Product', 'new_id',
    'Sale', 'SaleItem',
    'LedgerEvent',
]
