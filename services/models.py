"""
Pydantic models shared by the detection, search and aggregation services
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional


# Category used for products matched against the whole uploaded image
INITIAL_CATEGORY = "Initial"


# ==========================================
# Detection
# ==========================================

class NormalizedVertex(BaseModel):
    """Fractional position inside an image, both axes in [0, 1]"""
    x: float = 0.0
    y: float = 0.0


class BoundingPolygon(BaseModel):
    """
    Four normalized vertices in the order
    top-left, top-right, bottom-right, bottom-left
    """
    vertices: List[NormalizedVertex]

    @field_validator("vertices")
    @classmethod
    def _four_vertices(cls, value: List[NormalizedVertex]) -> List[NormalizedVertex]:
        if len(value) != 4:
            raise ValueError(f"bounding polygon needs exactly 4 vertices, got {len(value)}")
        return value

    def __getitem__(self, index: int) -> NormalizedVertex:
        return self.vertices[index]

    def flattened(self) -> List[float]:
        """[x0, y0, x1, y1, ...] as the search API expects for crop regions"""
        coords = []
        for vertex in self.vertices:
            coords.extend([vertex.x, vertex.y])
        return coords


class DetectedObject(BaseModel):
    id: str = ""           # opaque "mid" from the detector
    label: str
    score: float = 0.0
    bounding_polygon: BoundingPolygon

    @classmethod
    def from_annotation(cls, annotation: Dict[str, Any]) -> "DetectedObject":
        """
        Build from a localizedObjectAnnotations entry.
        The detector drops x or y from a vertex when the value is 0.
        """
        poly = annotation.get("boundingPoly") or {}
        vertices = [
            NormalizedVertex(x=v.get("x", 0.0), y=v.get("y", 0.0))
            for v in poly.get("normalizedVertices", [])
        ]
        return cls(
            id=annotation.get("mid", ""),
            label=annotation.get("name", ""),
            score=annotation.get("score", 0.0),
            bounding_polygon=BoundingPolygon(vertices=vertices),
        )


# ==========================================
# Products
# ==========================================

class ProductPrice(BaseModel):
    display_value: str
    numeric_value: Optional[float] = None
    currency: str = ""

    @classmethod
    def from_serpapi(cls, price: Any) -> Optional["ProductPrice"]:
        if not isinstance(price, dict):
            return None
        # Some responses wrap the price one level deeper under "value"
        if isinstance(price.get("value"), dict):
            price = price["value"]
        display = price.get("value")
        numeric = price.get("extracted_value")
        if display is None:
            return None
        return cls(
            display_value=str(display),
            numeric_value=float(numeric) if numeric is not None else None,
            currency=price.get("currency", ""),
        )


class Product(BaseModel):
    title: str = ""
    link: str = ""
    thumbnail: str = ""
    source: str = ""
    price: Optional[ProductPrice] = None
    category: Optional[str] = None
    cropped_image_url: Optional[str] = None

    @classmethod
    def from_serpapi(cls, item: Dict[str, Any]) -> "Product":
        """Build from one visual_matches entry"""
        return cls(
            title=item.get("title", ""),
            link=item.get("link", ""),
            thumbnail=item.get("thumbnail", ""),
            source=item.get("source", ""),
            price=ProductPrice.from_serpapi(item.get("price")),
        )

    def tagged(self, category: str, cropped_image_url: str) -> "Product":
        return self.model_copy(update={"category": category, "cropped_image_url": cropped_image_url})


class ResultGroup(BaseModel):
    """Products matched against one cropped region, keyed by the crop URL"""
    name: str
    cropped_image_url: str
    products: List[Product] = Field(default_factory=list)


# ==========================================
# Upload results
# ==========================================

class UploadedImage(BaseModel):
    image_id: str
    image_url: str


class UploadError(BaseModel):
    error: str


class ObjectOutcome(BaseModel):
    """Result of one detected object's crop -> upload -> search chain"""
    label: str
    group: Optional[ResultGroup] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.group is not None

    @classmethod
    def success(cls, group: ResultGroup) -> "ObjectOutcome":
        return cls(label=group.name, group=group)

    @classmethod
    def failure(cls, label: str, reason: str) -> "ObjectOutcome":
        return cls(label=label, error=reason)
