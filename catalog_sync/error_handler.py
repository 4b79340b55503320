"""Error handling helpers for operator-facing sync responses."""
from typing import Any, Dict
import logging

from catalog_sync.errors import CatalogFetchError

logger = logging.getLogger(__name__)


class ErrorHandler:
    def handle_exception(self, exc: Exception, context: Dict[str, Any] = None) -> Dict[str, Any]:
        logger.error("Catalog sync failed: %s", exc, exc_info=True)
        if isinstance(exc, CatalogFetchError):
            message = "The upstream catalog could not be reached. Stored products were left unchanged."
        else:
            message = "An internal error occurred while syncing the catalog. Please try again later."
        return {
            "success": False,
            "message": message,
            "synced": 0,
            "deleted": 0,
            "errors": 1,
            "metadata": {"error": str(exc), "context": context or {}},
        }
