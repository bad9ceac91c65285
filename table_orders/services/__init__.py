"""
                        Services Module

Order transaction engine and catalog administration. Every service is
built around the AsyncSession of the current unit of work; nothing here
holds state between requests.

Services:
    - stock: Stock ledger (atomic delta adjustments)
    - occupancy: Table occupancy resolver (single-tab policy)
    - orders: Order lifecycle manager (create/update/close/delete, reads)
    - kitchen: Kitchen status tracker
    - catalog: Product and table administration
"""

from table_orders.services.catalog import CatalogService
from table_orders.services.kitchen import KitchenStatusTracker
from table_orders.services.occupancy import TableOccupancyResolver
from table_orders.services.orders import OrderLifecycleManager
from table_orders.services.stock import StockLedger

__all__ = [
    "CatalogService",
    "KitchenStatusTracker",
    "TableOccupancyResolver",
    "OrderLifecycleManager",
    "StockLedger",
]
