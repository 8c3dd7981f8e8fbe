# Importing this module registers every table on Base.metadata.
from cashlog.models.audit_log import AuditLog
from cashlog.models.category import Category
from cashlog.models.history import MonthHistory, YearHistory
from cashlog.models.master_item import MasterItem
from cashlog.models.related_party import RelatedParty
from cashlog.models.transaction import Item, Transaction

__all__ = [
    "AuditLog",
    "Category",
    "Item",
    "MasterItem",
    "MonthHistory",
    "RelatedParty",
    "Transaction",
    "YearHistory",
]
