"""
db - Database layer.

Public API:
    Store                       → engine + session factory + transaction()
    PartCatalog, PartSupplier,
    Location, InventoryLot      → ORM models
    LotCondition                → NEW / SCRAP
"""

from db.engine import Store                                      # noqa: F401
from db.models import (                                          # noqa: F401
    Base, PartCatalog, PartSupplier, Location, InventoryLot, LotCondition,
)
