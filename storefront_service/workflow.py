"""
workflow.py — Orchestration of the Storefront Operations

This module wires the pure core (normalizer, fee resolver, assembler) to the
external clients. Each function corresponds to one API operation.

Workflows:
1. Catalog: fetch raw objects from the vendor → normalize
2. Delivery quote: geocode address → distance → tier → fee from catalog
3. Checkout: resolve delivery tier (deliveries) → assemble request → payment link
"""

import logging

from .catalog import normalize_catalog
from .checkout import CheckoutPayload, FulfillmentType, assemble_checkout_request, check_delivery_fee_line
from .config import StoreConfig
from .delivery import quote_delivery
from .errors import ValidationError
from .models import Catalog, DeliveryQuote, DeliveryQuoteRequest

log = logging.getLogger(__name__)


async def load_catalog(config: StoreConfig, catalog_client) -> Catalog:
    """
    Fetches and normalizes the vendor catalog.

    Args:
        config (StoreConfig): Category and delivery prefix for the inclusion rules.
        catalog_client (VendorCatalogClient): Source of the raw objects.

    Returns:
        Catalog: The normalized catalog.

    Raises:
        ConfigurationError: If the provider access token is missing.
        UpstreamDataError: If the vendor fails or delivers an empty batch.
    """
    config.require_credentials()
    log.info(f"[Catalog] Starte Katalogabruf (Umgebung: {config.environment}).")
    objects = await catalog_client.list_catalog()
    catalog = normalize_catalog(objects, config)
    if not catalog.items:
        log.warning("[Catalog] Keine Artikel im Katalog. Möglicherweise ein Filterproblem.")
    return catalog


async def price_delivery(request: DeliveryQuoteRequest, config: StoreConfig, geocoder,
                         catalog_client=None) -> DeliveryQuote:
    """
    Quotes the delivery fee for an address.

    Args:
        request (DeliveryQuoteRequest): Location and customer address.
        config (StoreConfig): Locations and tiers.
        geocoder (GeocodingClient): Resolves the address.
        catalog_client (VendorCatalogClient): If given, the fee amount is looked up in the live catalog.

    Raises:
        ValidationError: Unknown location.
        GeocodeError: Address unresolvable or outside the delivery radius.
    """
    config.require_geocoding()
    location = config.get_location(request.locationId)
    if location is None:
        raise ValidationError("Invalid store location")

    catalog = await load_catalog(config, catalog_client) if catalog_client is not None else None
    return await quote_delivery(request.deliveryAddress, location, geocoder, config, catalog)


async def create_checkout(payload: CheckoutPayload, config: StoreConfig, payment_client, geocoder,
                          catalog_client=None) -> dict:
    """
    Executes the checkout for one submission.

    Workflow Steps:
        Step 1 – Configuration:
            - Access token and provider location id must be present.
        Step 2 – Delivery tier (deliveries only):
            - The address is geocoded again on the server; the tier is never
              taken from the client.
            - With a catalog client, the cart must carry exactly the fee line
              of that tier.
        Step 3 – Assembly:
            - Preconditions are checked before anything is sent.
        Step 4 – Payment Provider:
            - A payment link is created; no automatic retry.

    Args:
        payload (CheckoutPayload): Request body from the storefront page.
        config (StoreConfig): Injected configuration.
        payment_client (PaymentClient): Payment provider client.
        geocoder (GeocodingClient): Required for deliveries.
        catalog_client (VendorCatalogClient): Source of the fee items for the fee line check.

    Returns:
        dict: The provider's ``payment_link`` object.

    Raises:
        ConfigurationError, ValidationError, GeocodeError, PaymentProviderError
    """
    config.require_credentials()

    delivery_tier = None
    if payload.fulfillmentType == FulfillmentType.DELIVERY and payload.deliveryAddress is not None:
        location = config.get_location(payload.locationId)
        if location is None:
            raise ValidationError("Invalid store location")
        config.require_geocoding()
        quote = await quote_delivery(payload.deliveryAddress, location, geocoder, config)
        delivery_tier = quote.tier
        if catalog_client is not None:
            catalog = await load_catalog(config, catalog_client)
            check_delivery_fee_line(payload.cartItems, delivery_tier, catalog, config)

    request = assemble_checkout_request(
        payload.cartItems,
        payload.locationId,
        payload.fulfillmentType,
        config,
        pickup_date=payload.pickupDate,
        pickup_time=payload.pickupTime,
        delivery_address=payload.deliveryAddress,
        delivery_tier=delivery_tier,
    )
    log_prefix = f"[Checkout: {request.idempotencyKey}]"
    log.info(f"{log_prefix} Erstelle Payment-Link ({len(request.lineItems)} Positionen, {request.fulfillmentType.value}).")

    result = await payment_client.create_payment_link(request)
    log.info(f"{log_prefix} Checkout erfolgreich erstellt.")
    return result["payment_link"]
