"""Storage layer for customers, credits, quotas and generated names."""

from .naming_db import NamingDB, open_naming_db
from .schemas import CustomerRecord, CreditTransaction, GeneratedNameRow

__all__ = [
    "NamingDB",
    "open_naming_db",
    "CustomerRecord",
    "CreditTransaction",
    "GeneratedNameRow",
]
