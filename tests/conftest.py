import copy

import pytest

from learning_timeline.common.gemini_client import MediaHandle
from learning_timeline.common.models import ProcessingStage, ProcessingStatus, can_transition
from learning_timeline.common.task_supervisor import TaskContext


class FakeAssetManager:
    """In-memory stand-in for VideoAssetManager with the same method contract."""

    def __init__(self, videos=None):
        self.videos = {video_id: dict(data) for video_id, data in (videos or {}).items()}
        self.updates = []

    def get_video(self, video_id):
        data = self.videos.get(video_id)
        if data is None:
            return None
        return {"id": video_id, **copy.deepcopy(data)}

    def update_video(self, video_id, data, clear_fields=()):
        if video_id not in self.videos:
            raise KeyError(video_id)
        self.updates.append((video_id, copy.deepcopy(data), tuple(clear_fields)))
        self.videos[video_id].update(copy.deepcopy(data))
        for field in clear_fields:
            self.videos[video_id].pop(field, None)

    def begin_processing(self, video_id):
        data = self.videos.get(video_id)
        if data is None:
            return None
        if not can_transition(ProcessingStatus.parse(data.get("status")), ProcessingStatus.PROCESSING):
            return False
        data["status"] = ProcessingStatus.PROCESSING.value
        data["processingStage"] = ProcessingStage.INITIALIZING.value
        return True

    def create_video(self, filename, storage_path, title=None, description=None, uploaded_by=None):
        video_id = f"video-{len(self.videos) + 1}"
        self.videos[video_id] = {"filename": filename, "storagePath": storage_path, "status": "uploaded"}
        return video_id

    def list_videos(self, limit=50):
        return [self.get_video(video_id) for video_id in list(self.videos)[:limit]]

    def delete_video(self, video_id):
        self.videos.pop(video_id, None)


class FakeStorage:
    def __init__(self, tmp_path, bucket_name="test-bucket"):
        self.tmp_path = tmp_path
        self.bucket_name = bucket_name
        self.downloads = []
        self.url_requests = []

    def gcs_uri(self, storage_path):
        return f"gs://{self.bucket_name}/{storage_path}"

    def exists(self, storage_path):
        return True

    def download(self, storage_path):
        local_path = self.tmp_path / f"download-{len(self.downloads)}.mp4"
        local_path.write_bytes(b"fake video")
        self.downloads.append(storage_path)
        return str(local_path)

    def generate_read_url(self, storage_path):
        self.url_requests.append(storage_path)
        return f"https://signed.example/{storage_path}?v={len(self.url_requests)}"

    def delete(self, storage_path):
        pass


class FakeGemini:
    """Returns queued responses in order; a queued exception is raised instead."""

    def __init__(self, responses=(), uses_file_api=True):
        self.responses = list(responses)
        self.uses_file_api = uses_file_api
        self.generate_calls = []
        self.uploads = []
        self.deleted = []

    def upload_media(self, local_path, mime_type="video/mp4", display_name=None):
        self.uploads.append(local_path)
        return MediaHandle(uri="https://gemini.example/files/abc", mime_type=mime_type,
                           name="files/abc", state="ACTIVE")

    def reference_media(self, uri, mime_type="video/mp4"):
        return MediaHandle(uri=uri, mime_type=mime_type)

    def wait_until_processed(self, media, poll_interval=5.0, ctx=None):
        return media

    def generate(self, prompt, media=None, response_schema=None, temperature=None):
        self.generate_calls.append({"prompt": prompt, "media": media, "response_schema": response_schema})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def delete_media(self, media):
        self.deleted.append(media)


class InlineSupervisor:
    """Runs submitted tasks immediately, with the same failure handling as TaskSupervisor."""

    def __init__(self):
        self.submitted = []

    def submit(self, key, fn, on_failure=None, timeout=None):
        self.submitted.append(key)
        ctx = TaskContext(key, timeout)
        try:
            fn(ctx)
        except Exception as e:
            if on_failure is not None:
                on_failure(e)


def _make_concepts(count=5):
    return [
        {
            "concept": f"Concept {i}",
            "timestamp": 60 * i,
            "description": f"Description {i}",
            "importance": "core",
            "conceptType": "main",
            "visualEmphasis": False,
        }
        for i in range(count)
    ]


@pytest.fixture
def make_concepts():
    return _make_concepts


@pytest.fixture
def storage(tmp_path):
    return FakeStorage(tmp_path)


@pytest.fixture
def supervisor():
    return InlineSupervisor()
