"""
Best-effort enrichment for gitpub posts.

Looks up the title of a liked page and renders static map images for
checkins. Nothing here is required for a post to be published.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from html import unescape
from typing import Dict, Optional

import httpx

from .models import EnrichmentSettings


MAPBOX_STATIC_URL = (
    "https://api.mapbox.com/styles/v1/mapbox/{style}/static/"
    "{lon},{lat},{zoom}/{width}x{height}@2x"
)

_OG_TITLE = re.compile(
    r'<meta[^>]*property=["\']og:title["\'][^>]*content=["\']([^"\']+)["\']', re.I
)
_TITLE = re.compile(r"<title[^>]*>([^<]+)</title>", re.I)


class EnrichmentError(Exception):
    """Raised when map images cannot be produced."""


def extract_title(html: str) -> Optional[str]:
    """Extract a page title from HTML, preferring og:title."""
    for pattern in (_OG_TITLE, _TITLE):
        match = pattern.search(html)
        if match:
            title = " ".join(unescape(match.group(1)).split())
            if title:
                return title
    return None


class Enricher:
    """
    Fetches supplementary data for posts over HTTP.
    """

    def __init__(self, settings: Optional[EnrichmentSettings] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize the enricher.

        Args:
            settings: Enrichment settings (Mapbox token, map size and styles)
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings or EnrichmentSettings()
        self.client = httpx.Client(
            timeout=self.settings.timeout,
            follow_redirects=True,
            headers={"User-Agent": "gitpub"},
            transport=transport,
        )

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    @property
    def maps_enabled(self) -> bool:
        return bool(self.settings.mapbox_token)

    def fetch_page_title(self, url: str) -> Optional[str]:
        """
        Fetch a page and return its title.

        Args:
            url: The page URL

        Returns:
            The og:title or <title> text, or None on any failure
        """
        if not url or not isinstance(url, str):
            return None

        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logging.warning(f"Could not fetch title of {url}: {e}")
            return None

        title = extract_title(response.text)
        if title:
            logging.info(f"Fetched title for {url}: {title}")
        return title

    def _map_url(self, style: str, lat: float, lon: float) -> str:
        return MAPBOX_STATIC_URL.format(
            style=style,
            lon=lon,
            lat=lat,
            zoom=self.settings.map_zoom,
            width=self.settings.map_width,
            height=self.settings.map_height,
        )

    def _fetch_image(self, style: str, lat: float, lon: float) -> bytes:
        # The token travels as a query parameter and is kept out of log lines.
        response = self.client.get(
            self._map_url(style, lat, lon),
            params={"access_token": self.settings.mapbox_token},
        )
        response.raise_for_status()
        if not response.content:
            raise EnrichmentError(f"Empty {style} map image")
        return response.content

    def fetch_map_images(self, lat: float, lon: float) -> Dict[str, bytes]:
        """
        Render static map images of a location, one per configured style.

        Args:
            lat: Latitude
            lon: Longitude

        Returns:
            Dict with the image bytes under `dark` and `light`

        Raises:
            EnrichmentError: If no token is configured or any image fails
        """
        if not self.maps_enabled:
            raise EnrichmentError("Mapbox token is required")
        if len(self.settings.map_styles) < 2:
            raise EnrichmentError("Two map styles (dark, light) are required")

        styles = self.settings.map_styles[:2]
        logging.info(f"Fetching {len(styles)} static maps for {lat},{lon}")

        try:
            with ThreadPoolExecutor(max_workers=len(styles)) as executor:
                futures = [executor.submit(self._fetch_image, style, lat, lon) for style in styles]
                dark, light = [future.result() for future in futures]
        except httpx.HTTPError as e:
            raise EnrichmentError(f"Map image request failed: {type(e).__name__}") from e

        return {"dark": dark, "light": light}
