"""
mock_geocoding_service.py — Mock Implementation of the Geocoding Service (REST API)

Resolves a handful of known Los Angeles addresses to fixed coordinates so the
delivery tiers can be exercised without a real geocoding key.

Simulation Scenarios:
    • Known address (substring match) → one result
    • Unknown address → ZERO_RESULTS
    • Missing key → REQUEST_DENIED

Endpoints:
    GET /maps/api/geocode/json — Geocodes ``address``.

Port:
    Default: 8003 (HTTP)
"""

from fastapi import FastAPI
import logging

app = FastAPI(title="Mock Geocoding Service")
logging.basicConfig(level=logging.INFO)

# address fragment -> (lat, lng)
KNOWN_ADDRESSES = {
    "1111 s figueroa": (34.043018, -118.267254),   # ~0.3 mi from Los Angeles store
    "1000 vin scully": (34.073851, -118.239958),   # ~2.8 mi from Los Angeles store
    "200 santa monica pier": (34.009400, -118.497300),  # outside the delivery radius
}


@app.get("/maps/api/geocode/json")
def geocode(address: str = "", key: str = ""):
    """
    Returns geocoding results in the service's JSON shape.

    Returns:
        dict: ``{"results": [{"geometry": {"location": {"lat", "lng"}}, ...}], "status": "OK"}``
    """
    if not key:
        logging.warning("[GC] Anfrage ohne API-Key abgelehnt.")
        return {"results": [], "status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."}

    normalized = address.lower()
    for fragment, (lat, lng) in KNOWN_ADDRESSES.items():
        if fragment in normalized:
            logging.info(f"[GC] Adresse aufgelöst: {address} → ({lat}, {lng})")
            return {
                "results": [{
                    "formatted_address": address,
                    "geometry": {"location": {"lat": lat, "lng": lng}}
                }],
                "status": "OK"
            }

    logging.info(f"[GC] Keine Treffer für: {address}")
    return {"results": [], "status": "ZERO_RESULTS"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8003)
