from __future__ import annotations

import logging
import re
from typing import Dict, Optional

import requests

LOGGER = logging.getLogger(__name__)

ZIPCLOUD_ENDPOINT = "https://zipcloud.ibsnet.co.jp/api/search"


def lookup_address(postal_code: str, timeout: float = 10.0, session: Optional[requests.Session] = None) -> Optional[Dict[str, str]]:
    """Resolve a Japanese postal code to prefecture, city and town.

    Returns None for anything that is not seven digits, for unknown codes and
    when the lookup service cannot be reached.
    """
    digits = re.sub(r"[^0-9]", "", postal_code or "")
    if len(digits) != 7:
        return None
    http = session or requests
    try:
        response = http.get(ZIPCLOUD_ENDPOINT, params={"zipcode": digits}, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("Postal code lookup failed for %s: %s", digits, exc)
        return None

    results = data.get("results") or []
    if data.get("status") != 200 or not results:
        return None
    first = results[0]
    return {
        "prefecture": first.get("address1", ""),
        "city": first.get("address2", ""),
        "town": first.get("address3", ""),
    }
