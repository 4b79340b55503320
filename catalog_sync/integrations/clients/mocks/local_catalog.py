"""
Local Catalog Client (Mock/Local).

Purpose:
- Acts as a development-time catalog source when Square credentials are not available.
- Loads catalog objects from a local JSON fixture (or an injected dict).

Fixture shape:
    {"items": [...ITEM objects...],
     "categories": [...CATEGORY objects...],
     "inventory": {"<catalog object id>": <count>, ...}}

Swap:
Replace with clients/real_http/square_catalog.py once credentials are configured.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from catalog_sync.integrations.contracts.interfaces import CatalogClient

logger = logging.getLogger(__name__)

DEFAULT_FIXTURE = Path(__file__).parent.parent.parent.parent.parent / "data" / "sample_catalog.json"


class LocalCatalogClient(CatalogClient):
    def __init__(self, data: Optional[Dict[str, Any]] = None, fixture_path: Optional[Path] = None) -> None:
        if data is None:
            path = Path(fixture_path) if fixture_path else DEFAULT_FIXTURE
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            logger.info("Loaded local catalog fixture from %s", path)
        self.data = data
        # Facets listed here raise instead of returning data (failure drills in dev/tests).
        self.failing_facets: Set[str] = set()
        self.calls: Dict[str, int] = {"items": 0, "categories": 0, "inventory": 0}

    def _facet(self, facet: str, default: Any) -> Any:
        self.calls[facet] += 1
        if facet in self.failing_facets:
            raise ConnectionError(f"local catalog facet '{facet}' is unavailable")
        # Present values are returned as stored, malformed or not.
        return copy.deepcopy(self.data.get(facet, default))

    async def get_catalog_items(self) -> List[Dict[str, Any]]:
        return self._facet("items", [])

    async def get_categories(self) -> List[Dict[str, Any]]:
        return self._facet("categories", [])

    async def get_inventory_counts(self) -> Dict[str, int]:
        return self._facet("inventory", {})

    async def get_image(self, image_id: str) -> Optional[Dict[str, Any]]:
        url = (self.data.get("images") or {}).get(image_id)
        if not url:
            return None
        return {"id": image_id, "url": url, "caption": "", "name": ""}

    # --- Fixture editing helpers --------------------------------------------

    def set_items(self, items: List[Dict[str, Any]]) -> None:
        self.data["items"] = copy.deepcopy(items)

    def remove_item(self, item_id: str) -> None:
        self.data["items"] = [i for i in self.data.get("items", []) if i.get("id") != item_id]
