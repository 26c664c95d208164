"""
Deck metadata lookup for saved deck links.

The lobby site exposes a small JSON endpoint that resolves a deckbuilder link
to its name and author. Lookup failures never raise: the caller always gets
a displayable `DeckMetadata`.
"""

from __future__ import annotations

import logging

import httpx

from .constants import METADATA_API_URL
from .models import DeckMetadata

logger = logging.getLogger(__name__)

USER_AGENT = "Mirrorbast/1.0"


async def fetch_deck_metadata(
    deck_url: str,
    *,
    api_url: str = METADATA_API_URL,
    timeout_s: float = 15.0,
    client: httpx.AsyncClient | None = None,
) -> DeckMetadata:
    """
    Resolve a deck link to its name and author.

    Args:
        deck_url: Deckbuilder link (must be http or https).
        api_url: Base URL of the lobby site.
        timeout_s: Request timeout.
        client: Optional shared client; a temporary one is created otherwise.

    Returns:
        DeckMetadata. On failure `name` describes the problem and `author` is "N/A".
    """
    if not deck_url or not deck_url.startswith(("http://", "https://")):
        logger.warning("Refusing metadata lookup for invalid URL: %r", deck_url)
        return DeckMetadata(name="Invalid URL", author="N/A")

    endpoint = f"{api_url.rstrip('/')}/api/swudbdeck"
    try:
        if client is not None:
            response = await _get(client, endpoint, deck_url)
        else:
            async with httpx.AsyncClient(timeout=timeout_s) as own_client:
                response = await _get(own_client, endpoint, deck_url)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as exc:
        logger.error("Metadata API error %s for %s", exc.response.status_code, deck_url)
        return DeckMetadata(name="Fetch Error", author="N/A")
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Fetch metadata error for %s: %s", deck_url, exc)
        return DeckMetadata(name="Fetch Error", author="N/A")

    metadata = data.get("metadata") if isinstance(data, dict) else None
    if not isinstance(metadata, dict) or "name" not in metadata:
        logger.warning("Invalid metadata structure for %s", deck_url)
        return DeckMetadata(name="Invalid Metadata", author="N/A")

    return DeckMetadata(
        name=str(metadata.get("name") or "Unnamed"),
        author=str(metadata.get("author") or "Unknown"),
    )


async def _get(client: httpx.AsyncClient, endpoint: str, deck_url: str) -> httpx.Response:
    return await client.get(
        endpoint,
        params={"deckLink": deck_url},
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
    )
