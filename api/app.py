"""
Visual Search Service - FastAPI application
Run with: uvicorn api.app:app --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional
import httpx
import logging

from api.endpoints import router
from services.blob_store import BlobStoreClient
from services.object_detector import ObjectDetectorClient
from services.pipeline import AggregationPipeline
from services.visual_search import VisualSearchClient
from utils.settings import Settings

settings = Settings.from_env()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(levelname)s:     %(message)s'
)
logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings, http_client: httpx.AsyncClient) -> AggregationPipeline:
    """Wire the storage, detection and search clients from configuration"""
    return AggregationPipeline(
        blob_store=BlobStoreClient.from_settings(settings),
        detector=ObjectDetectorClient(http_client, settings.detector_url, settings.detector_api_hash),
        search=VisualSearchClient(
            http_client,
            settings.serpapi_key,
            url=settings.serpapi_url,
            engine=settings.serpapi_engine,
        ),
        http_client=http_client,
        object_timeout=settings.object_timeout,
    )


def create_app(pipeline: Optional[AggregationPipeline] = None) -> FastAPI:
    """
    Build the application.
    With no pipeline given, clients are created from the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if pipeline is not None:
            app.state.pipeline = pipeline
            yield
            return

        http_client = httpx.AsyncClient(timeout=settings.http_timeout)
        try:
            app.state.pipeline = build_pipeline(settings, http_client)
            logger.info("✅ Visual search pipeline ready")
            yield
        finally:
            await http_client.aclose()

    app = FastAPI(title="Fashion Visual Search", version="1.0.0", lifespan=lifespan)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
