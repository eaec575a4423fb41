"""
main.py — FastAPI Entry Point for the Storefront Service

This module provides the REST API the storefront page talks to. It validates
incoming payloads, injects configuration and clients, and delegates to the
workflows.

Responsibilities:
    • Serve the normalized catalog
    • Quote delivery fees for customer addresses
    • Create hosted checkouts at the payment provider
    • Convert storefront errors into ``{"error": ..., "details": ...}`` responses
    • Provide store locations, pickup time slots and health information
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .checkout import CheckoutPayload, delivery_time_slots, next_day_date
from .clients import GeocodingClient, PaymentClient, VendorCatalogClient
from .config import StoreConfig
from .errors import StorefrontError
from .logging_config import get_logger, setup_logging
from .models import DeliveryQuoteRequest
from .workflow import create_checkout, load_catalog, price_delivery

# Initialization
setup_logging()
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Storefront-Service startet...")
    yield
    log.info("Storefront-Service beendet.")


app = FastAPI(title="Storefront Order Service", lifespan=lifespan)


# Dependencies
def get_config() -> StoreConfig:
    return StoreConfig.from_env()


async def get_catalog_client(config: StoreConfig = Depends(get_config)):
    async with VendorCatalogClient(config) as client:
        yield client


async def get_geocoder(config: StoreConfig = Depends(get_config)):
    async with GeocodingClient(config) as client:
        yield client


async def get_payment_client(config: StoreConfig = Depends(get_config)):
    async with PaymentClient(config) as client:
        yield client


def _camel(key: str) -> str:
    head, *tail = key.split("_")
    return head + "".join(part.title() for part in tail)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    """Turns any storefront error into its structured JSON response."""
    if exc.status_code >= 500:
        log.error(f"{request.method} {request.url.path} fehlgeschlagen: {exc.message} ({exc.details})")
    else:
        log.info(f"{request.method} {request.url.path} abgelehnt: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Reports malformed request bodies in the same ``{error, details}`` shape."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    log.info(f"{request.method} {request.url.path} abgelehnt: ungültige Anfrage ({problems})")
    return JSONResponse(status_code=422, content={"error": "Invalid request", "details": problems})


# API Endpoint: Catalog
@app.get("/catalog")
async def get_catalog(
        config: StoreConfig = Depends(get_config),
        catalog_client: VendorCatalogClient = Depends(get_catalog_client)
):
    """
    Returns the normalized catalog.

    Returns:
        dict: ``{"items": [...], "images": [...], "categories": [...]}``

    Raises:
        ConfigurationError (500): Missing provider access token.
        UpstreamDataError (500): Vendor failure or empty catalog.
    """
    try:
        catalog = await load_catalog(config, catalog_client)
    except StorefrontError:
        raise
    except Exception as e:
        log.critical(f"Unerwarteter Fehler beim Katalogabruf: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch catalog", "details": str(e)})
    return catalog.model_dump(exclude_none=True)


# API Endpoint: Delivery quote
@app.post("/delivery-quote")
async def post_delivery_quote(
        quote_request: DeliveryQuoteRequest,
        config: StoreConfig = Depends(get_config),
        geocoder: GeocodingClient = Depends(get_geocoder),
        catalog_client: VendorCatalogClient = Depends(get_catalog_client)
):
    """
    Prices the delivery to an address from the selected store.

    Returns:
        dict: ``{"distanceMiles": float, "tier": {...}, "fee": {"amount": int, "currency": str}}``

    Raises:
        ValidationError (400): Unknown location.
        GeocodeError (422): Unresolvable address or outside the delivery radius.
    """
    quote = await price_delivery(quote_request, config, geocoder, catalog_client)
    return quote.model_dump()


# API Endpoint: Checkout
@app.post("/checkout")
async def post_checkout(
        payload: CheckoutPayload,
        config: StoreConfig = Depends(get_config),
        payment_client: PaymentClient = Depends(get_payment_client),
        geocoder: GeocodingClient = Depends(get_geocoder),
        catalog_client: VendorCatalogClient = Depends(get_catalog_client)
):
    """
    Creates a hosted checkout for the submitted cart.

    Args:
        payload (CheckoutPayload): Cart lines, location and fulfillment details.

    Returns:
        dict: ``{"paymentLink": {"url": ..., ...}}``. The storefront redirects the customer to ``url``.

    Raises:
        ValidationError (400), GeocodeError (422), ConfigurationError (500), PaymentProviderError (502)
    """
    log.info(f"Checkout-Anfrage erhalten: {len(payload.cartItems)} Positionen, {payload.fulfillmentType.value}.")
    try:
        payment_link = await create_checkout(payload, config, payment_client, geocoder, catalog_client)
    except StorefrontError:
        raise
    except Exception as e:
        log.critical(f"Kritischer Fehler beim Checkout: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to create checkout"})
    return {"paymentLink": {_camel(k): v for k, v in payment_link.items()}}


@app.get("/locations")
def get_locations(config: StoreConfig = Depends(get_config)):
    return [
        {"id": loc.id, "name": loc.name, "formattedAddress": loc.formattedAddress, "lat": loc.lat, "lng": loc.lng}
        for loc in config.locations
    ]


@app.get("/time-slots")
def get_time_slots(config: StoreConfig = Depends(get_config)):
    return {"date": next_day_date(), "slots": delivery_time_slots(config)}


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint for container orchestrators.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}
