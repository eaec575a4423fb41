"""Integration tests for the REST API via TestClient, wired to the mock collaborators."""

import httpx
import pytest
from fastapi.testclient import TestClient

from mock_services import mock_catalog_service, mock_geocoding_service, mock_payment_service
from storefront_service.clients import GeocodingClient, PaymentClient, VendorCatalogClient
from storefront_service.main import app, get_catalog_client, get_config, get_geocoder, get_payment_client

NEAR_ADDRESS = {"addressLine1": "1111 S Figueroa St", "city": "Los Angeles", "state": "CA", "zip": "90015"}
FAR_ADDRESS = {"addressLine1": "200 Santa Monica Pier", "city": "Santa Monica", "state": "CA", "zip": "90401"}


@pytest.fixture()
def client(config):
    async def catalog_client():
        async with VendorCatalogClient(config, transport=httpx.ASGITransport(app=mock_catalog_service.app)) as c:
            yield c

    async def geocoder():
        async with GeocodingClient(config, transport=httpx.ASGITransport(app=mock_geocoding_service.app)) as c:
            yield c

    async def payment_client():
        async with PaymentClient(config, transport=httpx.ASGITransport(app=mock_payment_service.app)) as c:
            yield c

    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_catalog_client] = catalog_client
    app.dependency_overrides[get_geocoder] = geocoder
    app.dependency_overrides[get_payment_client] = payment_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def _checkout_body(**overrides):
    body = {
        "cartItems": [
            {"itemId": "TREE-FRASER", "variationId": "FRASER-6-7", "quantity": 1},
            {"itemId": "STAND", "variationId": "STAND-L", "quantity": 1},
        ],
        "locationId": "los-angeles",
        "fulfillmentType": "pickup",
        "pickupDate": "2024-12-20",
        "pickupTime": "09:00",
    }
    body.update(overrides)
    return body


class TestCatalogEndpoint:
    def test_returns_normalized_catalog(self, client):
        response = client.get("/catalog")
        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"items", "images", "categories"}
        tree = data["items"][0]
        assert tree["name"] == "Fraser Fir Christmas Tree"
        assert tree["imageIds"] == ["IMG-FRASER"]
        assert tree["variations"][1] == {
            "id": "FRASER-6-7", "name": "6-7 ft", "price": {"amount": 15000, "currency": "USD"},
            "itemId": "TREE-FRASER", "ordinal": 2, "available": True,
        }

    def test_missing_credentials(self, client, config):
        config.access_token = ""
        response = client.get("/catalog")
        assert response.status_code == 500
        assert response.json()["error"] == "Server configuration error"

    def test_empty_upstream_batch(self, client, config):
        config.access_token = "empty"
        response = client.get("/catalog")
        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to fetch catalog",
            "details": "No catalog objects found in vendor response",
        }


class TestDeliveryQuoteEndpoint:
    def test_quote(self, client):
        response = client.post("/delivery-quote", json={"locationId": "los-angeles", "deliveryAddress": NEAR_ADDRESS})
        assert response.status_code == 200
        data = response.json()
        assert data["tier"]["key"] == "<=1"
        assert data["tier"]["feeItemName"] == "DELIVERY-UNDER-1"
        assert data["fee"] == {"amount": 2000, "currency": "USD"}

    def test_outside_radius(self, client):
        response = client.post("/delivery-quote", json={"locationId": "los-angeles", "deliveryAddress": FAR_ADDRESS})
        assert response.status_code == 422
        assert response.json()["error"] == "Sorry, we only deliver within 8 miles of our location."

    def test_unknown_location(self, client):
        response = client.post("/delivery-quote", json={"locationId": "nowhere", "deliveryAddress": NEAR_ADDRESS})
        assert response.status_code == 400


class TestCheckoutEndpoint:
    def test_pickup_checkout(self, client):
        response = client.post("/checkout", json=_checkout_body())
        assert response.status_code == 200
        link = response.json()["paymentLink"]
        assert link["url"].startswith("https://sandbox.square.link/u/")
        assert "orderId" in link

    def test_pickup_without_time_slot(self, client):
        response = client.post("/checkout", json=_checkout_body(pickupTime=None))
        assert response.status_code == 400
        assert response.json() == {"error": "Please select a pickup time"}

    def test_delivery_checkout(self, client):
        body = _checkout_body(fulfillmentType="delivery", deliveryAddress=NEAR_ADDRESS)
        body["cartItems"].append({"itemId": "FEE-0", "variationId": "FEE-0-V", "quantity": 1})
        response = client.post("/checkout", json=body)
        assert response.status_code == 200

    def test_delivery_with_fee_line_of_other_tier(self, client):
        body = _checkout_body(fulfillmentType="delivery", deliveryAddress=NEAR_ADDRESS)
        body["cartItems"].append({"itemId": "FEE-1", "variationId": "FEE-1-V", "quantity": 1})
        response = client.post("/checkout", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "Delivery fee does not match the delivery address"

    def test_delivery_without_fee_line(self, client):
        response = client.post("/checkout", json=_checkout_body(fulfillmentType="delivery", deliveryAddress=NEAR_ADDRESS))
        assert response.status_code == 400

    def test_delivery_outside_radius(self, client):
        response = client.post("/checkout", json=_checkout_body(fulfillmentType="delivery", deliveryAddress=FAR_ADDRESS))
        assert response.status_code == 422

    def test_delivery_without_address(self, client):
        response = client.post("/checkout", json=_checkout_body(fulfillmentType="delivery"))
        assert response.status_code == 400

    def test_provider_failure(self, client, config):
        config.locations[0] = config.locations[0].model_copy(update={"providerLocationId": "DECLINE-LA"})
        response = client.post("/checkout", json=_checkout_body())
        assert response.status_code == 502
        assert response.json()["error"] == "Failed to create checkout"

    def test_missing_credentials(self, client, config):
        config.access_token = ""
        response = client.post("/checkout", json=_checkout_body())
        assert response.status_code == 500

    def test_invalid_body(self, client):
        response = client.post("/checkout", json=_checkout_body(fulfillmentType="drone"))
        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "Invalid request"
        assert "fulfillmentType" in data["details"]


def test_time_slots(client):
    data = client.get("/time-slots").json()
    assert [s["value"] for s in data["slots"]] == ["09:00", "12:00", "15:00", "18:00"]


def test_locations(client):
    assert [loc["id"] for loc in client.get("/locations").json()] == ["los-angeles", "altadena"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
