from checkout.store.base import WRITE_ONCE_FIELDS, OrderStore
from checkout.store.sql_store import SqlOrderStore

__all__ = ["WRITE_ONCE_FIELDS", "OrderStore", "SqlOrderStore"]
