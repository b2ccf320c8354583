"""Shared fixtures for the unittest suites"""

import io
from typing import Dict, List, Optional

from PIL import Image

from services.errors import BlobStoreError


def make_image(width: int = 1000, height: int = 1000, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color=(200, 30, 30) if mode == "RGB" else 0).save(buffer, format=fmt)
    return buffer.getvalue()


def image_size(data: bytes):
    return Image.open(io.BytesIO(data)).size


def polygon_dicts(x0: float, y0: float, x1: float, y1: float) -> List[Dict[str, float]]:
    """Axis-aligned box as detector-style normalizedVertices"""
    return [
        {"x": x0, "y": y0},
        {"x": x1, "y": y0},
        {"x": x1, "y": y1},
        {"x": x0, "y": y1},
    ]


def annotation(label: str, x0: float, y0: float, x1: float, y1: float, score: float = 0.9) -> Dict:
    return {
        "mid": f"/m/{label.lower()}",
        "name": label,
        "score": score,
        "boundingPoly": {"normalizedVertices": polygon_dicts(x0, y0, x1, y1)},
    }


def visual_match(title: str, price: Optional[float] = None) -> Dict:
    item = {
        "title": title,
        "link": f"https://shop.test/{title}",
        "thumbnail": f"https://img.test/{title}.jpg",
        "source": "Shop",
    }
    if price is not None:
        item["price"] = {"value": f"${price:.2f}", "extracted_value": price, "currency": "$"}
    return item


class FakeBlobStore:
    """In-memory stand-in for BlobStoreClient"""

    def __init__(self, public_url: str = "https://cdn.test", fail_keys: Optional[List[str]] = None):
        self.public_url = public_url
        self.fail_keys = fail_keys or []
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        if any(fragment in key for fragment in self.fail_keys):
            raise BlobStoreError(f"Failed to save {key}")
        self.objects[key] = data
        self.content_types[key] = content_type
        return self.url_for(key)


class StepClock:
    """Millisecond clock that advances by one on every call"""

    def __init__(self, start: int = 1700000000000, step: int = 1):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value
