from .connection import get_db, get_engine, get_session_factory, init_db, Base

from .models import JobDB, InvoiceItemDB, PaymentDB, ReceiptDB, MileageEntryDB

__all__ = [
    'get_db', 'get_engine', 'get_session_factory', 'init_db', 'Base',
    'JobDB', 'InvoiceItemDB', 'PaymentDB', 'ReceiptDB', 'MileageEntryDB',
]
