from .auth import User
from .partners import Supplier, SupplierCatalogItem, Client
from .inventory import Product, ProductSupplier, StockMovement
from .invoices import Invoice, InvoiceItem, InvoiceTax, InvoicePayment, InvoiceStatusHistory
from .documents import DocumentSequence

__all__ = [
    'User',
    'Supplier', 'SupplierCatalogItem', 'Client',
    'Product', 'ProductSupplier', 'StockMovement',
    'Invoice', 'InvoiceItem', 'InvoiceTax', 'InvoicePayment', 'InvoiceStatusHistory',
    'DocumentSequence',
]
