"""
services - Business-logic layer sitting between API and DB.
"""

from services.consumption_service import ConsumptionService, CutResult   # noqa: F401
from services.lot_store import LotStore, LotSnapshot                      # noqa: F401
from services.parts_service import PartsService                           # noqa: F401
from services.search_service import SearchService                         # noqa: F401
