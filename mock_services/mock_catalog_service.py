"""
mock_catalog_service.py — Mock Implementation of the Vendor Catalog (REST API)

This module simulates the vendor's catalog listing for local development and
tests. The seeded catalog mirrors the shop's real structure: trees in the
Christmas-tree category, a water bowl & stand with three sizes, the delivery
fee items, plus records the storefront must filter out (other categories,
deleted items, unreferenced images).

Simulation Scenarios:
    • Paginated listing via ``cursor`` (PAGE_SIZE objects per page)
    • Missing bearer token → HTTP 401
    • Token "empty" → listing without objects (upstream data error downstream)

Endpoints:
    GET /v2/catalog/list — Lists catalog objects filtered by ``types``.

Port:
    Default: 8002 (HTTP)
"""

from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from typing import Optional
import logging

app = FastAPI(title="Mock Vendor Catalog")
logging.basicConfig(level=logging.INFO)

PAGE_SIZE = 5
TREE_CATEGORY_ID = "IQ6T2GWVZQBH33LUA7NLBG46"


def _variation(var_id, item_id, name, amount, ordinal, is_deleted=False):
    return {
        "type": "ITEM_VARIATION",
        "id": var_id,
        "is_deleted": is_deleted,
        "item_variation_data": {
            "item_id": item_id,
            "name": name,
            "ordinal": ordinal,
            "price_money": {"amount": amount, "currency": "USD"}
        }
    }


def _delivery_item(item_id, name, amount):
    return {
        "type": "ITEM",
        "id": item_id,
        "is_deleted": False,
        "item_data": {
            "name": name,
            "variations": [_variation(f"{item_id}-V", item_id, "Regular", amount, 0)]
        }
    }


def seed_catalog() -> list:
    objects = [
        {"type": "CATEGORY", "id": TREE_CATEGORY_ID, "is_deleted": False,
         "category_data": {"name": "Christmas Trees"}},
        {"type": "CATEGORY", "id": "CAT-WREATHS", "is_deleted": False,
         "category_data": {"name": "Wreaths"}},
        {
            "type": "ITEM",
            "id": "TREE-FRASER",
            "is_deleted": False,
            "item_data": {
                "name": "Fraser Fir Christmas Tree",
                "description": "Fresh cut Fraser fir from North Carolina.",
                "categories": [{"id": TREE_CATEGORY_ID}],
                "image_ids": ["IMG-FRASER"],
                "variations": [
                    _variation("FRASER-5-6", "TREE-FRASER", "5-6 ft", 12000, 1),
                    _variation("FRASER-6-7", "TREE-FRASER", "6-7 ft", 15000, 2),
                    _variation("FRASER-7-8", "TREE-FRASER", "7-8 ft", "18000", 3, is_deleted=True),
                ]
            }
        },
        {
            "type": "ITEM",
            "id": "STAND",
            "is_deleted": False,
            "item_data": {
                "name": "Water Bowl & Stand",
                "reporting_category": {"id": TREE_CATEGORY_ID},
                "variations": [
                    _variation("STAND-S", "STAND", "Small", 2500, 1),
                    _variation("STAND-M", "STAND", "Medium", 3000, 2),
                    _variation("STAND-L", "STAND", "Large", 3500, 3),
                ]
            }
        },
        {
            "type": "ITEM",
            "id": "WREATH",
            "is_deleted": False,
            "item_data": {
                "name": "Noble Fir Wreath",
                "category_id": "CAT-WREATHS",
                "image_ids": ["IMG-WREATH"],
                "variations": [_variation("WREATH-24", "WREATH", "24 in", 6000, 1)]
            }
        },
        {
            "type": "ITEM",
            "id": "TREE-OLD",
            "is_deleted": True,
            "item_data": {
                "name": "Douglas Fir Christmas Tree",
                "category_id": TREE_CATEGORY_ID,
                "variations": [_variation("DOUGLAS-6-7", "TREE-OLD", "6-7 ft", 9000, 1)]
            }
        },
        {"type": "IMAGE", "id": "IMG-FRASER", "is_deleted": False,
         "image_data": {"url": "https://items-images.example.com/fraser.jpg"}},
        {"type": "IMAGE", "id": "IMG-WREATH", "is_deleted": False,
         "image_data": {"url": "https://items-images.example.com/wreath.jpg"}},
    ]
    fees = [2000, 2250, 2500, 2750, 3000, 3250, 3500, 3750]
    names = ["DELIVERY-UNDER-1"] + [f"DELIVERY-{n}-MILE" for n in range(1, 8)]
    objects.extend(_delivery_item(f"FEE-{i}", name, amount) for i, (name, amount) in enumerate(zip(names, fees)))
    return objects


@app.get("/v2/catalog/list")
def list_catalog(
        types: Optional[str] = None,
        cursor: Optional[str] = None,
        authorization: Optional[str] = Header(None)
):
    """
    Lists catalog objects, PAGE_SIZE per page.

    Args:
        types (str): Comma separated object types, e.g. "ITEM,IMAGE,CATEGORY".
        cursor (str): Offset returned by the previous page.

    Returns:
        dict: ``{"objects": [...], "cursor": "..."}``; ``cursor`` is omitted on the last page.
    """
    if not authorization or authorization == "Bearer ":
        return JSONResponse(status_code=401, content={"errors": [{"code": "UNAUTHORIZED", "detail": "Missing access token."}]})
    if authorization == "Bearer empty":
        logging.info("[VC] Simuliere leeren Katalog.")
        return {}

    wanted = set(types.split(",")) if types else None
    objects = [o for o in seed_catalog() if wanted is None or o["type"] in wanted]

    start = int(cursor or 0)
    page = objects[start:start + PAGE_SIZE]
    logging.info(f"[VC] Liefere Objekte {start}-{start + len(page)} von {len(objects)}.")

    body = {"objects": page}
    if start + PAGE_SIZE < len(objects):
        body["cursor"] = str(start + PAGE_SIZE)
    return body


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
