"""
Visual Search Endpoints
Upload an outfit photo, then fetch whole-image and per-object product matches
"""

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from typing import List, Optional, Union
import logging

from services.errors import PipelineError
from services.models import Product, ResultGroup, UploadedImage, UploadError
from services.pipeline import AggregationPipeline
from utils.price_helpers import sort_by_price

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Visual Search"])

# Optional caller-side ordering: ?sort=price_asc or ?sort=price_desc
PRICE_SORT_PATTERN = "^price_(asc|desc)$"


def get_pipeline(request: Request) -> AggregationPipeline:
    return request.app.state.pipeline


def _apply_sort(products: List[Product], sort: Optional[str]) -> List[Product]:
    if sort is None:
        return products
    return sort_by_price(products, descending=(sort == "price_desc"))


@router.get("/health")
async def health():
    return {"status": "healthy"}


@router.post("/upload", response_model=Union[UploadedImage, UploadError])
async def upload_image(
    image: Optional[UploadFile] = File(None),
    pipeline: AggregationPipeline = Depends(get_pipeline),
):
    """
    Upload an image to find similar fashion items

    Usage:
        curl -X POST http://localhost:8000/upload -F "image=@outfit.jpg"

    Returns {image_id, image_url} on success, {error} otherwise (always HTTP 200)
    """
    if image is None or not image.filename:
        return UploadError(error="No file uploaded")

    data = await image.read()
    if not data:
        return UploadError(error="No file uploaded")
    return await pipeline.upload(image.filename, data, image.content_type)


@router.get("/results/{image_id}/initial", response_model=List[Product])
async def initial_results(
    image_id: str,
    sort: Optional[str] = Query(None, pattern=PRICE_SORT_PATTERN),
    pipeline: AggregationPipeline = Depends(get_pipeline),
):
    """Products matching the whole uploaded image"""
    try:
        products = await pipeline.get_initial_results(image_id)
    except PipelineError as e:
        logger.error(f"Initial results failed for {image_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch results")
    return _apply_sort(products, sort)


@router.get("/results/{image_id}/objects", response_model=List[ResultGroup])
async def detected_object_results(image_id: str, pipeline: AggregationPipeline = Depends(get_pipeline)):
    """One group of products per detected clothing object"""
    try:
        return await pipeline.get_detected_object_results(image_id)
    except PipelineError as e:
        logger.error(f"Detected object results failed for {image_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch results")


@router.get("/results/{image_id}", response_model=List[Product])
async def all_results(
    image_id: str,
    sort: Optional[str] = Query(None, pattern=PRICE_SORT_PATTERN),
    pipeline: AggregationPipeline = Depends(get_pipeline),
):
    """Whole-image and per-object products in one flat list"""
    try:
        products = await pipeline.get_visual_matches(image_id)
    except PipelineError as e:
        logger.error(f"Visual matches failed for {image_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch results")
    return _apply_sort(products, sort)
