"""
Image Crop Service
Cuts a detected object's bounding polygon out of the original image
"""

import asyncio
import io
import math
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from services.errors import CropError
from services.models import BoundingPolygon


JPEG_QUALITY = 90


def crop_box(polygon: BoundingPolygon, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
    """
    Convert a normalized polygon to a pixel rectangle

    Returns:
        (left, top, width, height) in pixels

    Raises:
        CropError: If the rectangle is empty or falls outside the image
    """
    left = math.floor(polygon[0].x * image_width)
    top = math.floor(polygon[0].y * image_height)
    width = math.floor((polygon[1].x - polygon[0].x) * image_width)
    height = math.floor((polygon[2].y - polygon[1].y) * image_height)

    if width <= 0 or height <= 0:
        raise CropError(f"Degenerate crop area {width}x{height} at ({left}, {top})")
    if left < 0 or top < 0 or left + width > image_width or top + height > image_height:
        raise CropError(
            f"Crop area {width}x{height} at ({left}, {top}) is outside "
            f"the {image_width}x{image_height} image"
        )
    return left, top, width, height


def crop_image(image_bytes: bytes, polygon: BoundingPolygon) -> bytes:
    """
    Extract the polygon's region and re-encode it as JPEG

    Args:
        image_bytes: Encoded source image (any format Pillow reads)
        polygon: Normalized bounding polygon of the object

    Returns:
        JPEG bytes of the cropped region
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise CropError(f"Invalid image format: {e}") from e

    image_width, image_height = image.size
    if image_width <= 0 or image_height <= 0:
        raise CropError("Image has no pixels")

    left, top, width, height = crop_box(polygon, image_width, image_height)
    cropped = image.crop((left, top, left + width, top + height))

    # JPEG has no alpha channel or palette
    if cropped.mode != "RGB":
        cropped = cropped.convert("RGB")

    buffer = io.BytesIO()
    cropped.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    return buffer.getvalue()


async def crop(image_bytes: bytes, polygon: BoundingPolygon) -> bytes:
    """Run crop_image off the event loop"""
    return await asyncio.to_thread(crop_image, image_bytes, polygon)
