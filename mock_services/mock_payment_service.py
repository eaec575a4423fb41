"""
mock_payment_service.py — Mock Implementation of the Payment Provider (REST API)

This module provides a simulated payment provider for local development and tests.
It exposes a FastAPI application that mimics the provider's hosted payment links.

Simulation Scenarios:
    • Successful payment link creation
    • Rejected request (HTTP 400) for location ids starting with "DECLINE"
    • Idempotent replay: the same idempotency key returns the same link

Endpoints:
    POST /v2/online-checkout/payment-links — Creates a payment link.

Port:
    Default: 8001 (HTTP)
"""

from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Dict, List, Optional
import logging
import time
import uuid

app = FastAPI(title="Mock Payment Provider")
logging.basicConfig(level=logging.INFO)

# idempotency_key -> response
_links: Dict[str, dict] = {}


class LineItem(BaseModel):
    quantity: str
    catalog_object_id: str


class Order(BaseModel):
    location_id: str
    line_items: List[LineItem]
    metadata: Optional[Dict[str, str]] = None


class CheckoutOptions(BaseModel):
    redirect_url: Optional[str] = None


class PaymentLinkRequest(BaseModel):
    """
    Represents a payment link request payload.

    Attributes:
        idempotency_key (str): Unique key of the submission attempt.
        order (Order): Location and line items (catalog references with quantities).
        checkout_options (CheckoutOptions): Redirect target after payment.
    """
    idempotency_key: str
    order: Order
    checkout_options: Optional[CheckoutOptions] = None


@app.post("/v2/online-checkout/payment-links")
def create_payment_link(
        request: PaymentLinkRequest,
        authorization: Optional[str] = Header(None)
):
    """
    Processes a payment link request.

    Returns:
        dict: ``{"payment_link": {...}, "related_resources": {...}}`` on success.
        JSONResponse(401): Missing bearer token.
        JSONResponse(400): Location id starts with "DECLINE" or the order is empty.
    """
    logging.info(f"[PP] Payment-Link-Anfrage für {request.order.location_id} (Idempotenz: {request.idempotency_key})")

    if not authorization or not authorization.startswith("Bearer ") or authorization == "Bearer ":
        return JSONResponse(status_code=401, content={"errors": [{"code": "UNAUTHORIZED", "detail": "Missing access token."}]})

    if request.idempotency_key in _links:
        logging.info(f"[PP] Wiederholte Anfrage {request.idempotency_key}, liefere bestehenden Link.")
        return _links[request.idempotency_key]

    # Scenario simulation
    if request.order.location_id.startswith("DECLINE"):
        logging.warning(f"[PP] Anfrage für {request.order.location_id} abgelehnt.")
        return JSONResponse(
            status_code=400,
            content={"errors": [{"code": "NOT_FOUND", "detail": "Location not found."}]}
        )
    if not request.order.line_items:
        return JSONResponse(
            status_code=400,
            content={"errors": [{"code": "INVALID_VALUE", "detail": "Order has no line items."}]}
        )

    link_id = uuid.uuid4().hex[:16].upper()
    order_id = f"ord_{uuid.uuid4().hex[:12]}"
    result = {
        "payment_link": {
            "id": link_id,
            "version": 1,
            "order_id": order_id,
            "url": f"https://sandbox.square.link/u/{link_id}",
            "checkout_options": request.checkout_options.model_dump() if request.checkout_options else {},
            "created_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        },
        "related_resources": {
            "orders": [{
                "id": order_id,
                "location_id": request.order.location_id,
                "line_items": [li.model_dump() for li in request.order.line_items],
                "metadata": request.order.metadata or {}
            }]
        }
    }
    _links[request.idempotency_key] = result
    logging.info(f"[PP] Payment-Link {link_id} erstellt.")
    return result


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
