"""
Aggregation Pipeline
Upload → object detection → per-object crop/upload/search → grouped product results
"""

import asyncio
import logging
import time
from pathlib import PurePath
from typing import Callable, Dict, Iterable, List, Optional, Union

import httpx

from services.blob_store import BlobStoreClient
from services.errors import BlobStoreError, ImageDownloadError, PipelineError
from services.image_crop import crop
from services.models import (
    INITIAL_CATEGORY,
    DetectedObject,
    ObjectOutcome,
    Product,
    ResultGroup,
    UploadedImage,
    UploadError,
)
from services.object_detector import ObjectDetectorClient
from services.visual_search import VisualSearchClient

logger = logging.getLogger(__name__)

UploadResult = Union[UploadedImage, UploadError]


def _now_ms() -> int:
    return int(time.time() * 1000)


# ==========================================
# Pure helpers
# ==========================================

def dedupe_detections(objects: Iterable[DetectedObject]) -> List[DetectedObject]:
    """
    Drop objects whose top-left x matches an earlier object's.
    Position-only comparison; objects are not tested for real overlap.
    """
    seen_x = set()
    unique = []
    for obj in objects:
        left_x = obj.bounding_polygon[0].x
        if left_x in seen_x:
            logger.info(f"Dropping duplicate detection {obj.label} at x={left_x}")
            continue
        seen_x.add(left_x)
        unique.append(obj)
    return unique


def merge_groups(groups: Iterable[ResultGroup]) -> List[ResultGroup]:
    """Collapse groups sharing a cropped image URL, keeping first-seen order"""
    by_url: Dict[str, ResultGroup] = {}
    order: List[str] = []
    for group in groups:
        existing = by_url.get(group.cropped_image_url)
        if existing is None:
            by_url[group.cropped_image_url] = ResultGroup(
                name=group.name,
                cropped_image_url=group.cropped_image_url,
                products=list(group.products),
            )
            order.append(group.cropped_image_url)
        else:
            existing.products.extend(group.products)
    return [by_url[url] for url in order]


def group_products(products: Iterable[Product]) -> List[ResultGroup]:
    """Group tagged products by their cropped image URL"""
    return merge_groups(
        ResultGroup(
            name=product.category or "",
            cropped_image_url=product.cropped_image_url or "",
            products=[product],
        )
        for product in products
    )


# ==========================================
# Pipeline
# ==========================================

class AggregationPipeline:
    """
    Orchestrates the storage, detection and search clients.

    Clients are built once at startup and injected; the pipeline itself
    holds no per-request state.
    """

    def __init__(
        self,
        blob_store: BlobStoreClient,
        detector: ObjectDetectorClient,
        search: VisualSearchClient,
        http_client: httpx.AsyncClient,
        object_timeout: Optional[float] = 60.0,
        clock: Callable[[], int] = _now_ms,
    ):
        self.blob_store = blob_store
        self.detector = detector
        self.search = search
        self.http_client = http_client
        self.object_timeout = object_timeout
        self.clock = clock

    async def upload(self, filename: Optional[str], data: Optional[bytes], content_type: Optional[str]) -> UploadResult:
        """
        Store an uploaded image.

        Never raises for expected failures; callers branch on the result type.
        """
        if not filename or not data:
            return UploadError(error="No file uploaded")

        image_id = f"{self.clock()}-{PurePath(filename).name}"
        try:
            image_url = await self.blob_store.put(image_id, data, content_type or "application/octet-stream")
        except BlobStoreError as e:
            logger.error(f"Error saving upload {filename}: {e}")
            return UploadError(error="Failed to save the file")

        logger.info(f"✅ Uploaded {filename} as {image_id}")
        return UploadedImage(image_id=image_id, image_url=image_url)

    async def get_initial_results(self, image_id: str) -> List[Product]:
        """Whole-image matches, tagged "Initial". Search failures propagate."""
        image_url = self.blob_store.url_for(image_id)
        products = await self.search.search(image_url)
        return [product.tagged(INITIAL_CATEGORY, image_url) for product in products]

    async def get_detected_object_results(self, image_id: str) -> List[ResultGroup]:
        """
        Per-object matches, one group per surviving detected object

        Detection, configuration and image download failures abort the call.
        Failures inside one object's crop/upload/search chain only drop that object.
        """
        self.search.ensure_configured()

        image_url = self.blob_store.url_for(image_id)
        detected = await self.detector.detect(image_url)
        objects = dedupe_detections(detected)
        if not objects:
            logger.warning(f"⚠️ No objects detected in {image_id}")
            return []

        image_bytes = await self._download_image(image_url)

        outcomes = await asyncio.gather(
            *(self._process_object(image_bytes, obj, image_id) for obj in objects)
        )

        groups = [outcome.group for outcome in outcomes if outcome.ok]
        failed = [outcome.label for outcome in outcomes if not outcome.ok]
        if failed:
            logger.warning(f"⚠️ Dropped {len(failed)} of {len(outcomes)} objects: {failed}")

        merged = merge_groups(groups)
        logger.info(f"✅ Built {len(merged)} result groups for {image_id}")
        return merged

    async def get_visual_matches(self, image_id: str) -> List[Product]:
        """Whole-image matches followed by every per-object match, flattened"""
        tasks = [
            asyncio.ensure_future(self.get_initial_results(image_id)),
            asyncio.ensure_future(self.get_detected_object_results(image_id)),
        ]
        try:
            initial, groups = await asyncio.gather(*tasks)
        except BaseException:
            # Stop the sibling call when one side fails or the caller cancels
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        products = list(initial)
        for group in groups:
            products.extend(group.products)
        return products

    async def _download_image(self, image_url: str) -> bytes:
        try:
            response = await self.http_client.get(image_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error downloading {image_url}: {e}")
            raise ImageDownloadError(f"Failed to download {image_url}") from e

        logger.info(f"📥 Downloaded image: {len(response.content)} bytes")
        return response.content

    async def _process_object(self, image_bytes: bytes, obj: DetectedObject, image_id: str) -> ObjectOutcome:
        try:
            group = await asyncio.wait_for(
                self._crop_upload_search(image_bytes, obj, image_id),
                timeout=self.object_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Timed out processing object {obj.label} after {self.object_timeout}s")
            return ObjectOutcome.failure(obj.label, "timeout")
        except PipelineError as e:
            logger.error(f"Error processing object {obj.label}: {e}")
            return ObjectOutcome.failure(obj.label, str(e))
        except Exception as e:
            logger.error(f"Unexpected error processing object {obj.label}: {e}")
            return ObjectOutcome.failure(obj.label, str(e))
        return ObjectOutcome.success(group)

    async def _crop_upload_search(self, image_bytes: bytes, obj: DetectedObject, image_id: str) -> ResultGroup:
        cropped = await crop(image_bytes, obj.bounding_polygon)

        key = f"cropped-{self.clock()}-{obj.label}-{image_id}"
        cropped_image_url = await self.blob_store.put(key, cropped, "image/jpeg")

        products = await self.search.search(cropped_image_url)
        return ResultGroup(
            name=obj.label,
            cropped_image_url=cropped_image_url,
            products=[product.tagged(obj.label, cropped_image_url) for product in products],
        )
