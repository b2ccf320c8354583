"""
Visual Search Client
Finds purchasable products that look like an image, using SerpAPI's Google Lens engine
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from services.errors import ConfigurationError, SearchError
from services.models import BoundingPolygon, Product

logger = logging.getLogger(__name__)


def format_crop(polygon: BoundingPolygon) -> str:
    """Comma-joined x,y pairs of the polygon's vertices"""
    return ",".join(str(coord) for coord in polygon.flattened())


class VisualSearchClient:
    """Client for the visual product search endpoint"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str],
        url: str = "https://serpapi.com/search.json",
        engine: str = "google_lens",
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.url = url
        self.engine = engine

    def ensure_configured(self):
        if not self.api_key:
            raise ConfigurationError("SERPAPI_KEY is not defined")

    async def search(self, image_url: str, crop_region: Optional[BoundingPolygon] = None) -> List[Product]:
        """
        Search for products visually similar to an image

        Args:
            image_url: Public URL of the image to match
            crop_region: Optional region of the image to restrict matching to

        Returns:
            Matching products, untagged. Missing visual_matches means no matches.

        Raises:
            ConfigurationError: If the API key is missing
            SearchError: If the service is unreachable or answers non-2xx
        """
        self.ensure_configured()

        params = {
            "engine": self.engine,
            "api_key": self.api_key,
            "url": image_url,
        }
        if crop_region is not None:
            params["crop"] = format_crop(crop_region)

        logger.info(f"🛍️ Searching visual matches for: {image_url}")
        try:
            response = await self.http_client.get(self.url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"❌ Error calling visual search for {image_url}: {e}")
            raise SearchError(f"Failed to fetch visual matches for {image_url}") from e
        except ValueError as e:
            logger.error(f"❌ Visual search returned invalid JSON for {image_url}: {e}")
            raise SearchError("Visual search returned invalid JSON") from e

        matches = []
        if isinstance(data, dict):
            matches = data.get("visual_matches") or []

        products = []
        for item in matches:
            try:
                products.append(Product.from_serpapi(item))
            except (ValidationError, AttributeError, TypeError, ValueError) as e:
                logger.warning(f"⚠️ Skipping malformed visual match: {e}")

        logger.info(f"✅ Found {len(products)} products")
        return products
