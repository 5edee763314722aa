""" Service for handling video document storage """
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from google.cloud import firestore

from .models import ProcessingStage, ProcessingStatus, can_transition

# Get a logger instance for this module.
# It will inherit the configuration from the root logger in the service entry point.
logger = logging.getLogger(__name__)


@firestore.transactional
def _begin_processing_in_transaction(transaction, doc_ref) -> Optional[bool]:
    """
    Reads the status and flips it to 'processing' inside one transaction.

    Returns None if the document does not exist, False if it is already
    processing, True once the transition has been written.
    """
    snapshot = doc_ref.get(transaction=transaction)
    if not snapshot.exists:
        return None
    current = ProcessingStatus.parse((snapshot.to_dict() or {}).get("status"))
    if not can_transition(current, ProcessingStatus.PROCESSING):
        return False
    transaction.update(doc_ref, {
        "status": ProcessingStatus.PROCESSING.value,
        "processingStage": ProcessingStage.INITIALIZING.value,
    })
    return True


class VideoAssetManager:
    """
    Manages video documents in Firestore.

    Each lecture video is one document in a single collection; the generated
    timeline and the refinement/engagement results are fields of that
    document. Unlike fire-and-forget metadata writers, every method here
    raises on failure: a lost status write would leave a video stuck.
    """

    def __init__(self, project_id: str, collection_path: str = "videos", client=None):
        """
        Initializes the Firestore client and sets the collection path.

        Args:
            project_id (str): Your Google Cloud project ID.
            collection_path (str): The collection holding video documents.
            client: An existing Firestore client (mainly for tests).
        """
        self.db = client or firestore.Client(project=project_id)
        self.collection_path = collection_path
        self.videos_collection = self.db.collection(self.collection_path)
        logger.info("Initialized VideoAssetManager for collection: %s", self.collection_path)

    def _get_doc_ref(self, video_id: str) -> firestore.DocumentReference:
        return self.videos_collection.document(video_id)

    def create_video(
        self,
        filename: str,
        storage_path: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> str:
        """
        Creates a video document in the 'uploaded' state.

        Returns:
            str: The generated document ID.
        """
        doc_ref = self.videos_collection.document()
        video = {
            "filename": filename,
            "storagePath": storage_path,
            "uploadedAt": datetime.now(timezone.utc),
            "status": ProcessingStatus.UPLOADED.value,
        }
        # Only add optional fields if they're provided
        if title:
            video["title"] = title
        if description:
            video["description"] = description
        if uploaded_by:
            video["uploadedBy"] = uploaded_by

        try:
            doc_ref.set(video)
        except Exception:
            logger.error("Error creating video for %s", storage_path, exc_info=True,
                         extra={"extra_fields": {"storage_path": storage_path}})
            raise
        logger.info("Created video %s for %s", doc_ref.id, storage_path,
                    extra={"extra_fields": {"video_id": doc_ref.id}})
        return doc_ref.id

    def get_video(self, video_id: str) -> Optional[Dict]:
        """
        Retrieves a video document.

        Returns:
            Optional[dict]: The document data with its 'id', or None if not found.
        """
        try:
            doc = self._get_doc_ref(video_id).get()
        except Exception:
            logger.error("Error retrieving video %s", video_id, exc_info=True,
                         extra={"extra_fields": {"video_id": video_id}})
            raise
        if not doc.exists:
            logger.warning("Video %s not found.", video_id, extra={"extra_fields": {"video_id": video_id}})
            return None
        return {"id": doc.id, **doc.to_dict()}

    def list_videos(self, limit: int = 50) -> List[Dict]:
        query = (self.videos_collection
                 .order_by("uploadedAt", direction=firestore.Query.DESCENDING)
                 .limit(limit))
        return [{"id": doc.id, **doc.to_dict()} for doc in query.stream()]

    def update_video(self, video_id: str, data: Dict, clear_fields: Iterable[str] = ()) -> None:
        """
        Partially updates a video document. Last write wins.

        Args:
            video_id (str): The video document ID.
            data (dict): Top-level fields to overwrite.
            clear_fields: Top-level fields to delete from the document.
        """
        update_payload = dict(data)
        for field in clear_fields:
            update_payload[field] = firestore.DELETE_FIELD

        try:
            self._get_doc_ref(video_id).update(update_payload)
        except Exception:
            logger.error("Error updating fields %s for video %s", sorted(update_payload), video_id,
                         exc_info=True, extra={"extra_fields": {"video_id": video_id}})
            raise
        logger.debug("Updated fields %s for video %s", sorted(update_payload), video_id,
                     extra={"extra_fields": {"video_id": video_id}})

    def begin_processing(self, video_id: str) -> Optional[bool]:
        """
        Atomically moves a video into 'processing' unless it already is.

        Returns:
            None if the video does not exist, False if it is already being
            processed, True if this caller won the transition.
        """
        transaction = self.db.transaction()
        return _begin_processing_in_transaction(transaction, self._get_doc_ref(video_id))

    def delete_video(self, video_id: str) -> None:
        try:
            self._get_doc_ref(video_id).delete()
        except Exception:
            logger.error("Error deleting video %s", video_id, exc_info=True,
                         extra={"extra_fields": {"video_id": video_id}})
            raise
        logger.info("Deleted video %s", video_id, extra={"extra_fields": {"video_id": video_id}})
