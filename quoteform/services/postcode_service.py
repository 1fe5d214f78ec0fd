"""Postcode -> address candidates via a configurable lookup provider"""
from typing import Any, Dict, List, Optional
import logging

import httpx

from quoteform.models.forms import AddressAnswer
from quoteform.services.visibility import stringify

logger = logging.getLogger(__name__)


class PostcodeLookupError(Exception):
    """Lookup could not produce candidates"""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


def build_lookup_params(postcode: str, api_key: Optional[str] = None) -> Dict[str, str]:
    params = {"postcode": postcode}
    if api_key:
        params["key"] = api_key
    return params


def parse_candidates(body: Any) -> List[AddressAnswer]:
    """
    Map a provider response onto address answers

    Accepts either a top-level list or an object carrying the list under
    `addresses` / `Addresses`. Non-object entries are ignored.
    """
    if isinstance(body, list):
        items = body
    elif isinstance(body, dict):
        items = body.get("addresses")
        if items is None:
            items = body.get("Addresses")
    else:
        items = []

    if not isinstance(items, list):
        return []

    return [
        AddressAnswer(
            full_address=stringify(item.get("Address")),
            building_number=stringify(item.get("BuildingNumber")),
            street=stringify(item.get("StreetAddress")),
            town=stringify(item.get("Town")),
            postcode=stringify(item.get("Postcode"))
        )
        for item in items
        if isinstance(item, dict)
    ]


async def lookup_postcode(
    postcode: str,
    api_url: str,
    api_key: Optional[str] = None,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> List[AddressAnswer]:
    """
    Fetch address candidates for a postcode

    Args:
        postcode: Postcode as typed by the respondent
        api_url: Lookup endpoint (per question or form-wide)
        api_key: Optional provider key, sent as `key`
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        Address candidates in provider order (possibly empty)

    Raises:
        PostcodeLookupError: Blank postcode (400), no endpoint configured
            (400), transport failure, non-200 reply or unreadable body (502)
    """
    postcode = (postcode or "").strip()
    if not postcode:
        raise PostcodeLookupError("Please enter a postcode", status_code=400)
    if not api_url:
        raise PostcodeLookupError("Address lookup is not configured for this form", status_code=400)

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(api_url, params=build_lookup_params(postcode, api_key))
    except httpx.HTTPError as e:
        logger.error(f"Postcode lookup request failed: {e}")
        raise PostcodeLookupError("Address lookup service unavailable")

    if response.status_code != 200:
        logger.warning(f"Postcode lookup returned {response.status_code} for {postcode}")
        raise PostcodeLookupError(f"Address lookup failed with status {response.status_code}")

    try:
        body = response.json()
    except ValueError:
        logger.error("Postcode lookup returned a non-JSON body")
        raise PostcodeLookupError("Address lookup returned an unreadable response")

    candidates = parse_candidates(body)
    logger.info(f"Postcode lookup for {postcode}: {len(candidates)} candidates")
    return candidates
