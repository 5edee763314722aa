""" Thin wrapper around the Gemini API used by every timeline service """
import logging
import time
from dataclasses import dataclass
from typing import Optional

from google import genai
from google.genai import types

from .exceptions import MediaProcessingError
from .task_supervisor import TaskContext

logger = logging.getLogger(__name__)


@dataclass
class MediaHandle:
    """A video Gemini can read: an uploaded File API object or a bucket URI."""

    uri: str
    mime_type: str
    name: Optional[str] = None
    state: str = "ACTIVE"


def _state_name(state) -> str:
    return getattr(state, "name", None) or str(state or "STATE_UNSPECIFIED")


class GeminiClient:
    """
    Uploads media to Gemini and runs text generation against it.

    With an API key the Gemini Developer API is used and videos go through
    the File API (upload, poll, generate, delete). Without one the client
    talks to Vertex AI, which reads ``gs://`` URIs directly, so nothing has
    to be uploaded.
    """

    def __init__(
        self,
        model_name: str = "gemini-2.5-flash",
        api_key: Optional[str] = None,
        project_id: Optional[str] = None,
        location: str = "global",
        max_output_tokens: int = 65535,
        client=None,
        use_file_api: Optional[bool] = None,
    ):
        self.model_name = model_name
        self.max_output_tokens = max_output_tokens
        self.uses_file_api = bool(api_key) if use_file_api is None else use_file_api
        if client is not None:
            self.client = client
        elif api_key:
            self.client = genai.Client(api_key=api_key)
        else:
            self.client = genai.Client(vertexai=True, project=project_id, location=location)

    def upload_media(self, local_path: str, mime_type: str = "video/mp4",
                     display_name: Optional[str] = None) -> MediaHandle:
        logger.info("Uploading %s to Gemini...", local_path)
        uploaded = self.client.files.upload(
            file=local_path,
            config=types.UploadFileConfig(mime_type=mime_type, display_name=display_name),
        )
        logger.info("Video uploaded: %s", uploaded.uri)
        return MediaHandle(
            uri=uploaded.uri,
            mime_type=uploaded.mime_type or mime_type,
            name=uploaded.name,
            state=_state_name(uploaded.state),
        )

    def reference_media(self, uri: str, mime_type: str = "video/mp4") -> MediaHandle:
        return MediaHandle(uri=uri, mime_type=mime_type)

    def wait_until_processed(self, media: MediaHandle, poll_interval: float = 5.0,
                             ctx: Optional[TaskContext] = None) -> MediaHandle:
        """
        Polls the File API until the uploaded media leaves the PROCESSING state.

        The loop has no deadline of its own; a supervised task bounds it
        through ``ctx``.

        Raises:
            MediaProcessingError: if Gemini reports the media as FAILED.
        """
        if media.name is None:
            return media

        while media.state == "PROCESSING":
            logger.info("Waiting for video processing of %s...", media.name)
            if ctx is not None:
                ctx.sleep(poll_interval)
            else:
                time.sleep(poll_interval)
            current = self.client.files.get(name=media.name)
            media.state = _state_name(current.state)

        if media.state == "FAILED":
            raise MediaProcessingError("Video processing failed")
        logger.info("Video processing complete for %s", media.name)
        return media

    def generate(self, prompt: str, media: Optional[MediaHandle] = None,
                 response_schema: Optional[dict] = None, temperature: Optional[float] = None) -> str:
        """
        Sends the prompt (after the video, when there is one) and returns the response text.
        """
        contents = []
        if media is not None:
            # Video before prompt
            contents.append(types.Part.from_uri(file_uri=media.uri, mime_type=media.mime_type))
        contents.append(types.Part.from_text(text=prompt))

        config_kwargs = {"max_output_tokens": self.max_output_tokens}
        if temperature is not None:
            config_kwargs["temperature"] = temperature
        if response_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = response_schema

        response = self.client.models.generate_content(
            model=self.model_name,
            contents=[types.Content(role="user", parts=contents)],
            config=types.GenerateContentConfig(**config_kwargs),
        )
        return response.text or ""

    def delete_media(self, media: MediaHandle) -> None:
        if media.name is None:
            return
        self.client.files.delete(name=media.name)
        logger.info("Deleted Gemini file %s", media.name)
