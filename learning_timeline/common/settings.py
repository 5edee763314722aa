"""
Environment configuration for the timeline services.

Values are read from the process environment, with a local ``.env`` file
loaded first for development.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS = ("GCP_PROJECT_ID", "GCS_BUCKET_NAME")


@dataclass(frozen=True)
class Settings:
    project_id: str
    bucket_name: str
    region: str = "us-central1"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_max_tokens: int = 65535
    signed_url_expiry: int = 3600
    firestore_collection: str = "videos"
    artifact_dir: str = "output"
    media_poll_interval: float = 5.0
    task_timeout: float = 1800.0
    task_max_workers: int = 4
    content_profile: str = "default"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """
        Builds the settings from environment variables.

        Raises:
            RuntimeError: if a required variable is missing.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        missing_vars = [var for var in REQUIRED_ENV_VARS if not environ.get(var)]
        if missing_vars:
            logger.critical("Missing required environment variables: %s", ", ".join(missing_vars))
            raise RuntimeError(
                f"Configuration error: {', '.join(missing_vars)} environment variables must be set."
            )

        if not environ.get("GEMINI_API_KEY"):
            logger.warning("GEMINI_API_KEY not set - using Vertex AI with bucket URIs instead of the File API")

        return cls(
            project_id=environ["GCP_PROJECT_ID"],
            bucket_name=environ["GCS_BUCKET_NAME"],
            region=environ.get("GCP_REGION", "us-central1"),
            gemini_api_key=environ.get("GEMINI_API_KEY") or None,
            gemini_model=environ.get("GEMINI_MODEL", "gemini-2.5-flash"),
            gemini_max_tokens=int(environ.get("GEMINI_MAX_TOKENS", "65535")),
            signed_url_expiry=int(environ.get("GCS_SIGNED_URL_EXPIRY", "3600")),
            firestore_collection=environ.get("FIRESTORE_COLLECTION", "videos"),
            artifact_dir=environ.get("ARTIFACT_DIR", "output"),
            media_poll_interval=float(environ.get("MEDIA_POLL_INTERVAL_SECONDS", "5")),
            task_timeout=float(environ.get("TASK_TIMEOUT_SECONDS", "1800")),
            task_max_workers=int(environ.get("TASK_MAX_WORKERS", "4")),
            content_profile=environ.get("AI_CONTENT_PROFILE", "default"),
        )
