""" Builds the Google Cloud clients a service entry point needs from its settings """
import atexit
import logging
from dataclasses import dataclass

from .artifact_store import ArtifactStore
from .gemini_client import GeminiClient
from .settings import Settings
from .storage_manager import StorageManager
from .task_supervisor import TaskSupervisor
from .video_asset_manager import VideoAssetManager

logger = logging.getLogger(__name__)


@dataclass
class ServiceClients:
    asset_manager: VideoAssetManager
    storage: StorageManager
    gemini: GeminiClient
    supervisor: TaskSupervisor
    artifacts: ArtifactStore


def build_clients(settings: Settings) -> ServiceClients:
    logger.info("Initializing clients for project %s", settings.project_id)
    supervisor = TaskSupervisor(max_workers=settings.task_max_workers, default_timeout=settings.task_timeout)
    # Signal running tasks to stop when the container shuts down
    atexit.register(supervisor.shutdown, wait=False)
    return ServiceClients(
        asset_manager=VideoAssetManager(settings.project_id, settings.firestore_collection),
        storage=StorageManager(settings.bucket_name, settings.project_id, settings.signed_url_expiry),
        gemini=GeminiClient(
            model_name=settings.gemini_model,
            api_key=settings.gemini_api_key,
            project_id=settings.project_id,
            max_output_tokens=settings.gemini_max_tokens,
        ),
        supervisor=supervisor,
        artifacts=ArtifactStore(settings.artifact_dir),
    )
