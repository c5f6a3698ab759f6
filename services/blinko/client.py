"""Async client for the Blinko note service.

Two calls matter to the relay: uploading an image fetched from the messaging
platform, and creating a note that optionally references that image. Every
failure mode (transport error, non-success status, malformed body) surfaces as
`UpstreamError` so callers only handle one exception type.
"""

from __future__ import annotations

import logging
from typing import Sequence, Union

import httpx
from pydantic import ValidationError

from models.pending import ImageRef
from services.blinko.schemas import NoteResponse, UploadedFile

LOGGER = logging.getLogger(__name__)

UPLOAD_PATH = "/api/file/upload"
NOTE_PATH = "/api/v1/note/upsert"
UPLOAD_FILENAME = "image.jpg"
NOTE_TYPE = 0

NoteId = Union[int, str]


class UpstreamError(Exception):
    """Raised when the note service or the image source cannot be used."""


class BlinkoClient:
    """Upload images and create notes against a Blinko deployment."""

    def __init__(self, http: httpx.AsyncClient, base_url: str, api_token: str) -> None:
        if http is None:
            raise ValueError("httpx.AsyncClient is required.")
        if not base_url:
            raise ValueError("Blinko base URL is required.")
        self.http = http
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"}

    async def upload_image(self, source_url: str) -> ImageRef:
        """Fetch an image from `source_url` and store it on the note service.

        Args:
            source_url: Location of the image bytes (the platform's PicUrl).

        Returns:
            An `ImageRef` describing the uploaded file.

        Raises:
            UpstreamError: If downloading or uploading fails for any reason.
        """
        try:
            source = await self.http.get(source_url)
            source.raise_for_status()
            content_type = source.headers.get("content-type", "image/jpeg")
            response = await self.http.post(
                f"{self.base_url}{UPLOAD_PATH}",
                files={"file": (UPLOAD_FILENAME, source.content, content_type)},
                headers=self._headers,
            )
            response.raise_for_status()
            uploaded = UploadedFile.model_validate(response.json())
        except (httpx.HTTPError, RuntimeError) as exc:
            # A closed AsyncClient raises RuntimeError rather than an httpx error.
            raise UpstreamError(f"Image upload failed: {exc}") from exc
        except (ValidationError, ValueError) as exc:
            raise UpstreamError(f"Malformed upload response: {exc}") from exc

        LOGGER.info("Uploaded image %s (%s bytes)", uploaded.file_name, uploaded.size)
        return ImageRef(
            path=uploaded.file_path,
            name=uploaded.file_name,
            mime_type=uploaded.type,
            size_bytes=uploaded.size,
        )

    async def create_note(self, content: str, attachments: Sequence[ImageRef] = ()) -> NoteId:
        """Create a note and return its identifier.

        Raises:
            UpstreamError: If the request fails or the response carries no id.
        """
        payload = {
            "content": content,
            "type": NOTE_TYPE,
            "attachments": [ref.as_attachment() for ref in attachments],
        }
        try:
            response = await self.http.post(
                f"{self.base_url}{NOTE_PATH}",
                json=payload,
                headers=self._headers,
            )
            response.raise_for_status()
            note = NoteResponse.model_validate(response.json())
        except (httpx.HTTPError, RuntimeError) as exc:
            raise UpstreamError(f"Note creation failed: {exc}") from exc
        except (ValidationError, ValueError) as exc:
            raise UpstreamError(f"Malformed note response: {exc}") from exc

        if note.id is None:
            raise UpstreamError("Note service did not return a note id.")
        return note.id
