"""
Environment configuration for the visual search service.
Values come from the process environment, with a .env file in the repo root.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the root directory
load_dotenv(Path(__file__).parent.parent / ".env")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup"""

    public_url: str
    bucket_name: Optional[str] = None
    account_id: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    storage_endpoint_url: Optional[str] = None
    storage_region: str = "auto"

    serpapi_key: Optional[str] = None
    serpapi_url: str = "https://serpapi.com/search.json"
    serpapi_engine: str = "google_lens"

    detector_url: str = "https://dupe.com/api/vision"
    detector_api_hash: Optional[str] = None

    http_timeout: float = 30.0
    object_timeout: float = 60.0
    log_level: str = "INFO"

    @property
    def storage_endpoint(self) -> Optional[str]:
        """S3-compatible endpoint; Cloudflare R2 unless overridden"""
        if self.storage_endpoint_url:
            return self.storage_endpoint_url
        if self.account_id:
            return f"https://{self.account_id}.r2.cloudflarestorage.com"
        return None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            public_url=os.getenv("CLOUDFLARE_PUBLIC_URL", "").rstrip("/"),
            bucket_name=os.getenv("CLOUDFLARE_BUCKET_NAME"),
            account_id=os.getenv("CLOUDFLARE_ACCOUNT_ID"),
            access_key_id=os.getenv("CLOUDFLARE_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("CLOUDFLARE_SECRET_ACCESS_KEY"),
            storage_endpoint_url=os.getenv("STORAGE_ENDPOINT_URL") or None,
            storage_region=os.getenv("STORAGE_REGION", "auto"),
            serpapi_key=os.getenv("SERPAPI_KEY") or None,
            serpapi_url=os.getenv("SERPAPI_URL", "https://serpapi.com/search.json"),
            serpapi_engine=os.getenv("SERPAPI_ENGINE", "google_lens"),
            detector_url=os.getenv("DETECTOR_URL", "https://dupe.com/api/vision"),
            detector_api_hash=os.getenv("DETECTOR_API_HASH") or None,
            http_timeout=_float_env("HTTP_TIMEOUT_SECONDS", 30.0),
            object_timeout=_float_env("OBJECT_TIMEOUT_SECONDS", 60.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
