"""
Address geocoding through a Nominatim-compatible HTTP endpoint.
Only used from the admin settings screen to pin the store location.
"""
from typing import Optional, Tuple

import requests
from flask import current_app


def geocode_address(address: str) -> Optional[Tuple[float, float]]:
    """
    Resolve ``address`` to ``(lat, lng)``.
    Returns None when the provider has no match; HTTP failures propagate as
    ``requests.RequestException`` for the caller to report.
    """
    url = current_app.config.get("GEOCODING_URL")
    params = {"q": address, "format": "json", "limit": 1}
    headers = {"User-Agent": current_app.config.get("GEOCODING_USER_AGENT", "storefront-backend")}

    res = requests.get(url, params=params, headers=headers, timeout=current_app.config.get("GEOCODING_TIMEOUT", 10))
    res.raise_for_status()

    results = res.json()
    if not results:
        return None

    first = results[0]
    return float(first["lat"]), float(first["lon"])
