"""Read-only selectors returning DTOs."""

from tire_kernel.selectors.catalog_selector import CatalogSelector
from tire_kernel.selectors.request_selector import RequestSelector
from tire_kernel.selectors.stock_selector import StockSelector

__all__ = ["CatalogSelector", "RequestSelector", "StockSelector"]
