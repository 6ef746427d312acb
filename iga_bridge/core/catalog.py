import os
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from iga_bridge.models.catalog import CatalogItem

FALLBACK_CATALOG_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config", "fallback_catalog.yaml")

def load_fallback_catalog(path: str = FALLBACK_CATALOG_PATH) -> Tuple[CatalogItem, ...]:
    """Reads the built-in demo catalog. Entries without an id or label are skipped."""
    with open(path, "r") as file:
        config = yaml.safe_load(file) or {}

    items = []
    for entry in config.get("items", []):
        if not entry.get("id") or not entry.get("label"):
            continue
        items.append(CatalogItem(
            id=str(entry["id"]),
            label=str(entry["label"]),
            description=entry.get("description"),
            type=entry.get("type"),
        ))
    return tuple(items)


FALLBACK_ITEMS = load_fallback_catalog()


def filter_items(items: Iterable[CatalogItem], query: Optional[str]) -> List[CatalogItem]:
    """
    Case-insensitive substring match on label or description.
    An empty query returns every item, in order.
    """
    items = list(items)
    if not query:
        return items
    needle = query.lower()
    return [
        item for item in items
        if needle in item.label.lower() or (item.description and needle in item.description.lower())
    ]


def filter_fallback(query: Optional[str]) -> List[CatalogItem]:
    return filter_items(FALLBACK_ITEMS, query)


def first_present(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_items(raw_items: Any) -> Optional[List[CatalogItem]]:
    """
    Maps the heterogeneous IGA item shapes into CatalogItems.
    Returns None if the payload is not a list, so callers can fall back.
    """
    if not isinstance(raw_items, list):
        return None

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        item_id = first_present(raw, "id", "itemId")
        label = first_present(raw, "displayName", "name", "label")
        item_id = "" if item_id is None else str(item_id)
        label = "" if label is None else str(label)
        if not item_id or not label:
            continue
        description = raw.get("description")
        item_type = raw.get("type")
        items.append(CatalogItem(
            id=item_id,
            label=label,
            description=description if isinstance(description, str) else None,
            type=item_type if isinstance(item_type, str) else None,
        ))
    return items
