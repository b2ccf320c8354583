"""
Object Detector Client
HTTP client for the remote object localization service
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from services.errors import ConfigurationError, DetectionError
from services.models import DetectedObject

logger = logging.getLogger(__name__)


class ObjectDetectorClient:
    """Client for the detection endpoint (POST {imageUrl, hash})"""

    def __init__(self, http_client: httpx.AsyncClient, url: str, api_hash: Optional[str]):
        self.http_client = http_client
        self.url = url
        self.api_hash = api_hash

    def ensure_configured(self):
        if not self.api_hash:
            raise ConfigurationError("DETECTOR_API_HASH is not defined")

    async def detect(self, image_url: str) -> List[DetectedObject]:
        """
        Detect clothing objects in a publicly reachable image

        Args:
            image_url: Public URL of the uploaded image

        Returns:
            Detected objects in the order the service reported them.
            An empty list means nothing was found, which is not an error.

        Raises:
            ConfigurationError: If the service credential is missing
            DetectionError: If the service is unreachable or answers non-2xx
        """
        self.ensure_configured()

        logger.info(f"🔍 Detecting objects in {image_url}")
        try:
            response = await self.http_client.post(
                self.url,
                json={"imageUrl": image_url, "hash": self.api_hash},
                headers={"Accept": "application/json, text/plain, */*"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error calling detection endpoint: {e}")
            raise DetectionError("Failed to fetch data from detection API") from e
        except ValueError as e:
            logger.error(f"Detection endpoint returned invalid JSON: {e}")
            raise DetectionError("Detection API returned invalid JSON") from e

        annotations = []
        if isinstance(data, list) and data and isinstance(data[0], dict):
            annotations = data[0].get("localizedObjectAnnotations") or []

        objects = []
        for annotation in annotations:
            try:
                objects.append(DetectedObject.from_annotation(annotation))
            except (ValidationError, AttributeError) as e:
                logger.warning(f"⚠️ Skipping malformed annotation {annotation!r}: {e}")

        logger.info(f"✅ Detected {len(objects)} objects")
        return objects
