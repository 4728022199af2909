"""Calendar client initialization from the API discovery document."""

import logging
from typing import Any

import httpx

from taffy.calendar.client import CalendarCapability
from taffy.google.exceptions import ClientInitError, DiscoveryFetchError

logger = logging.getLogger(__name__)

DISCOVERY_DOC_URL = "https://www.googleapis.com/discovery/v1/apis/calendar/v3/rest"


async def fetch_discovery_document(
    http_client: httpx.AsyncClient,
    url: str = DISCOVERY_DOC_URL,
) -> dict[str, Any]:
    """Fetch and parse a discovery document.

    Args:
        http_client: Client used for the GET request.
        url: Discovery document URL.

    Returns:
        The parsed document.

    Raises:
        DiscoveryFetchError: On transport errors, non-2xx responses, or malformed JSON.
    """
    logger.info("Fetching Calendar API discovery document...")
    try:
        response = await http_client.get(url)
    except httpx.HTTPError as e:
        raise DiscoveryFetchError(f"Failed to fetch discovery doc: {e}") from e

    if not response.is_success:
        raise DiscoveryFetchError(
            f"Failed to fetch discovery doc: {response.status_code} {response.reason_phrase}",
            status=response.status_code,
        )

    try:
        document = response.json()
    except ValueError as e:
        raise DiscoveryFetchError(
            f"Malformed discovery doc: {e}", status=response.status_code
        ) from e

    if not isinstance(document, dict):
        raise DiscoveryFetchError(
            "Malformed discovery doc: expected a JSON object", status=response.status_code
        )

    logger.info("Discovery document fetched successfully.")
    return document


async def initialize_calendar_client(
    gapi: Any,
    api_key: str | None,
    http_client: httpx.AsyncClient,
    url: str = DISCOVERY_DOC_URL,
) -> CalendarCapability:
    """Build the calendar capability from a freshly fetched discovery document.

    Args:
        gapi: Loaded API client SDK (googleapiclient.discovery).
        api_key: Application API key.
        http_client: Client used to fetch the discovery document.
        url: Discovery document URL.

    Raises:
        DiscoveryFetchError: If the document cannot be fetched or parsed.
        ClientInitError: If the client cannot be built from the document.
    """
    document = await fetch_discovery_document(http_client, url)

    try:
        capability = CalendarCapability(document, api_key, gapi)
    except Exception as e:
        raise ClientInitError(f"Failed to build calendar client: {e}") from e

    logger.info("Calendar client initialized with fetched discovery doc.")
    return capability
