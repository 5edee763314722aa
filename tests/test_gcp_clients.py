import os
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.cloud import firestore

from learning_timeline.common.exceptions import MediaProcessingError
from learning_timeline.common.gemini_client import GeminiClient, MediaHandle
from learning_timeline.common.storage_manager import StorageManager
from learning_timeline.common.task_supervisor import TaskContext
from learning_timeline.common.ttl_cache import TTLCache
from learning_timeline.common.video_asset_manager import VideoAssetManager


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


# StorageManager

@pytest.fixture
def gcs_client():
    client = MagicMock()
    blob = client.bucket.return_value.blob.return_value
    blob.exists.return_value = True
    blob.generate_signed_url.side_effect = ["https://signed/1", "https://signed/2"]
    return client


def test_signed_url_is_cached_until_near_expiry(gcs_client):
    clock = FakeClock()
    manager = StorageManager("lectures", signed_url_expiry=3600, client=gcs_client,
                             url_cache=TTLCache(clock=clock))
    blob = gcs_client.bucket.return_value.blob.return_value

    assert manager.generate_read_url("videos/a.mp4") == "https://signed/1"
    clock.now = 3539
    assert manager.generate_read_url("videos/a.mp4") == "https://signed/1"
    assert blob.generate_signed_url.call_count == 1

    clock.now = 3540
    assert manager.generate_read_url("videos/a.mp4") == "https://signed/2"
    assert blob.generate_signed_url.call_args.kwargs["version"] == "v4"
    assert blob.generate_signed_url.call_args.kwargs["method"] == "GET"


def test_signed_url_for_missing_object(gcs_client):
    gcs_client.bucket.return_value.blob.return_value.exists.return_value = False
    manager = StorageManager("lectures", client=gcs_client)
    with pytest.raises(FileNotFoundError):
        manager.generate_read_url("videos/missing.mp4")


def test_delete_invalidates_cached_url(gcs_client):
    manager = StorageManager("lectures", client=gcs_client)
    manager.generate_read_url("videos/a.mp4")
    manager.delete("videos/a.mp4")
    assert manager.generate_read_url("videos/a.mp4") == "https://signed/2"
    assert manager.gcs_uri("videos/a.mp4") == "gs://lectures/videos/a.mp4"


def test_failed_download_removes_temp_file(gcs_client):
    created = []

    def fail(path):
        created.append(path)
        raise RuntimeError("network down")

    gcs_client.bucket.return_value.blob.return_value.download_to_filename.side_effect = fail
    manager = StorageManager("lectures", client=gcs_client)

    with pytest.raises(RuntimeError):
        manager.download("videos/a.mov")

    assert created[0].endswith(".mov")
    assert not os.path.exists(created[0])


# GeminiClient

def test_client_mode_follows_api_key():
    assert GeminiClient(api_key="key", client=MagicMock()).uses_file_api
    assert not GeminiClient(client=MagicMock()).uses_file_api


def test_upload_and_poll_until_active():
    genai_client = MagicMock()
    genai_client.files.upload.return_value = SimpleNamespace(
        uri="https://files/abc", mime_type="video/mp4", name="files/abc", state=SimpleNamespace(name="PROCESSING"))
    genai_client.files.get.side_effect = [
        SimpleNamespace(state=SimpleNamespace(name="PROCESSING")),
        SimpleNamespace(state=SimpleNamespace(name="ACTIVE")),
    ]
    gemini = GeminiClient(api_key="key", client=genai_client)

    media = gemini.upload_media("/tmp/a.mp4", display_name="vid-1")
    assert media.state == "PROCESSING"

    gemini.wait_until_processed(media, poll_interval=0, ctx=TaskContext("test"))

    assert media.state == "ACTIVE"
    assert genai_client.files.get.call_count == 2

    gemini.delete_media(media)
    genai_client.files.delete.assert_called_once_with(name="files/abc")


def test_failed_media_raises():
    genai_client = MagicMock()
    gemini = GeminiClient(api_key="key", client=genai_client)
    media = MediaHandle(uri="https://files/abc", mime_type="video/mp4", name="files/abc", state="FAILED")

    with pytest.raises(MediaProcessingError):
        gemini.wait_until_processed(media, poll_interval=0)


def test_bucket_reference_needs_no_polling_or_delete():
    genai_client = MagicMock()
    gemini = GeminiClient(client=genai_client)
    media = gemini.reference_media("gs://lectures/videos/a.mp4")

    gemini.wait_until_processed(media)
    gemini.delete_media(media)

    genai_client.files.get.assert_not_called()
    genai_client.files.delete.assert_not_called()


def test_generate_puts_video_before_prompt():
    genai_client = MagicMock()
    genai_client.models.generate_content.return_value = SimpleNamespace(text='{"ok": true}')
    gemini = GeminiClient(model_name="gemini-test", client=genai_client, max_output_tokens=1000)
    media = MediaHandle(uri="gs://lectures/videos/a.mp4", mime_type="video/mp4")

    text = gemini.generate("Analyze", media=media,
                           response_schema={"type": "OBJECT", "properties": {"score": {"type": "NUMBER"}}})

    assert text == '{"ok": true}'
    kwargs = genai_client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-test"
    parts = kwargs["contents"][0].parts
    assert parts[0].file_data.file_uri == "gs://lectures/videos/a.mp4"
    assert parts[1].text == "Analyze"
    assert kwargs["config"].max_output_tokens == 1000
    assert kwargs["config"].response_mime_type == "application/json"


def test_generate_without_text_returns_empty_string():
    genai_client = MagicMock()
    genai_client.models.generate_content.return_value = SimpleNamespace(text=None)
    assert GeminiClient(client=genai_client).generate("hello") == ""


# VideoAssetManager

def test_update_video_deletes_cleared_fields():
    db = MagicMock()
    manager = VideoAssetManager("project", client=db)
    doc_ref = db.collection.return_value.document.return_value

    manager.update_video("vid-1", {"status": "ready"}, clear_fields=("error",))

    db.collection.assert_called_with("videos")
    doc_ref.update.assert_called_once_with({"status": "ready", "error": firestore.DELETE_FIELD})


def test_update_video_propagates_errors():
    db = MagicMock()
    db.collection.return_value.document.return_value.update.side_effect = RuntimeError("unavailable")
    manager = VideoAssetManager("project", client=db)

    with pytest.raises(RuntimeError):
        manager.update_video("vid-1", {"status": "ready"})


def test_get_video_returns_none_when_missing():
    db = MagicMock()
    db.collection.return_value.document.return_value.get.return_value = SimpleNamespace(exists=False)
    assert VideoAssetManager("project", client=db).get_video("nope") is None


def test_get_video_includes_id():
    db = MagicMock()
    db.collection.return_value.document.return_value.get.return_value = SimpleNamespace(
        exists=True, id="vid-1", to_dict=lambda: {"status": "ready"})
    assert VideoAssetManager("project", client=db).get_video("vid-1") == {"id": "vid-1", "status": "ready"}


def test_create_video_starts_uploaded():
    db = MagicMock()
    new_ref = db.collection.return_value.document.return_value
    new_ref.id = "generated"
    manager = VideoAssetManager("project", client=db)

    assert manager.create_video("a.mp4", "videos/a.mp4", title="APIs") == "generated"
    written = new_ref.set.call_args.args[0]
    assert written["status"] == "uploaded"
    assert written["title"] == "APIs"
    assert "description" not in written
