"""
catalog.py — Catalog Normalization

Turns the vendor's raw catalog listing (a heterogeneous batch of ITEM, IMAGE
and CATEGORY objects) into the storefront's ``Catalog``.

Inclusion rules:
    • Items: type ITEM, named, with a variations list, not soft-deleted, and
      either in the target category or named with the delivery prefix.
    • Variations: all variations of an eligible item; soft-deleted ones are
      kept but marked unavailable.
    • Images: only those referenced by an eligible item.
    • Categories: only the target category.

Malformed records are filtered out; only an empty batch is an error.
"""

import logging
from typing import Iterable, List, Optional

from .config import StoreConfig
from .errors import UpstreamDataError
from .models import Catalog, CatalogItem, Category, Image, Money, Variation

log = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def _to_int(value, default: int = 0) -> int:
    """Coerces the vendor's big-integer representation (int or numeric string)."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _id_of(ref) -> Optional[str]:
    return ref.get("id") if isinstance(ref, dict) else None


def _dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _str(value) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def belongs_to_category(item_data: dict, category_id: str) -> bool:
    """
    Checks every place the vendor may record an item's category.

    Args:
        item_data (dict): The raw ``item_data`` block.
        category_id (str): Target category id.

    Returns:
        bool: True if the categories list, the reporting category or the
        flat ``category_id`` field references the target category.
    """
    categories = item_data.get("categories")
    if isinstance(categories, list) and any(_id_of(c) == category_id for c in categories):
        return True
    if _id_of(item_data.get("reporting_category")) == category_id:
        return True
    return item_data.get("category_id") == category_id


def is_delivery_item(name: Optional[str], config: StoreConfig) -> bool:
    return bool(name) and name.startswith(config.delivery_item_prefix)


def is_eligible_item(obj: dict, config: StoreConfig) -> bool:
    if obj.get("type") != "ITEM" or obj.get("is_deleted") or not _str(obj.get("id")):
        return False
    item_data = obj.get("item_data")
    if not isinstance(item_data, dict):
        return False
    name = item_data.get("name")
    if not name or not isinstance(name, str) or not isinstance(item_data.get("variations"), list):
        return False
    return belongs_to_category(item_data, config.target_category_id) or is_delivery_item(name, config)


def is_eligible_image(obj: dict) -> bool:
    image_data = obj.get("image_data")
    return obj.get("type") == "IMAGE" and bool(_str(obj.get("id"))) and bool(_str(_dict(image_data).get("url")))


def is_eligible_category(obj: dict, config: StoreConfig) -> bool:
    category_data = obj.get("category_data")
    return (
        obj.get("type") == "CATEGORY"
        and bool(_str(_dict(category_data).get("name")))
        and obj.get("id") == config.target_category_id
    )


def _to_variation(raw: dict, item_id: str) -> Optional[Variation]:
    if not isinstance(raw, dict) or not _str(raw.get("id")):
        return None
    data = _dict(raw.get("item_variation_data"))
    price_money = _dict(data.get("price_money"))
    return Variation(
        id=raw["id"],
        name=_str(data.get("name")) or "",
        price=Money(
            amount=max(_to_int(price_money.get("amount")), 0),
            currency=_str(price_money.get("currency")) or "USD",
        ),
        itemId=item_id,
        ordinal=_to_int(data.get("ordinal")),
        # Availability only follows the variation's own deletion flag
        available=not raw.get("is_deleted", False),
    )


def _to_item(obj: dict) -> CatalogItem:
    item_data = obj["item_data"]
    variations = [_to_variation(v, obj["id"]) for v in item_data["variations"]]
    image_ids = item_data.get("image_ids")
    if isinstance(image_ids, list):
        image_ids = [i for i in image_ids if isinstance(i, str)] or None
    else:
        image_ids = None
    return CatalogItem(
        id=obj["id"],
        name=item_data["name"],
        description=_str(item_data.get("description")),
        variations=[v for v in variations if v is not None],
        imageIds=image_ids,
        category=_str(item_data.get("category_id")),
    )


def normalize_catalog(objects: Optional[Iterable[dict]], config: StoreConfig) -> Catalog:
    """
    Builds the domain catalog from a raw vendor listing.

    Args:
        objects (Iterable[dict]): Raw catalog objects in the vendor's JSON shape.
        config (StoreConfig): Provides target category id and delivery prefix.

    Returns:
        Catalog: Eligible items, the images they reference and the target category.

    Raises:
        UpstreamDataError: If the batch is missing or empty.
    """
    if not objects:
        raise UpstreamDataError("Failed to fetch catalog", "No catalog objects found in vendor response")

    objects = [obj for obj in objects if isinstance(obj, dict)]
    if not objects:
        raise UpstreamDataError("Failed to fetch catalog", "Vendor response contained no usable catalog objects")

    items: List[CatalogItem] = [_to_item(obj) for obj in objects if is_eligible_item(obj, config)]
    log.info(f"Katalog: {len(items)} Artikel übernommen ({', '.join(i.name for i in items)}).")

    referenced = {image_id for item in items for image_id in (item.imageIds or [])}
    images = [
        Image(id=obj["id"], url=obj["image_data"]["url"])
        for obj in objects
        if is_eligible_image(obj) and obj.get("id") in referenced
    ]

    categories = [
        Category(id=obj["id"], name=obj["category_data"]["name"])
        for obj in objects
        if is_eligible_category(obj, config)
    ]

    if not items:
        log.warning("Katalog enthält keine Artikel nach dem Filtern. Kategorie-ID prüfen.")
    log.info(f"Katalog normalisiert: {len(items)} Artikel, {len(images)} Bilder, {len(categories)} Kategorien.")
    return Catalog(items=items, images=images, categories=categories)


def format_price(amount: int, currency: str = "USD") -> str:
    """Formats minor units for display, e.g. ``format_price(18500)`` → ``'$185.00'``."""
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{amount / 100:,.2f}"
    return f"{amount / 100:,.2f} {currency}"
