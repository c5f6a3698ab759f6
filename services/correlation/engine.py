"""Per-sender state machine pairing an image with an optional caption.

Each sender is either idle or awaiting a caption for one uploaded image. A
caption text, an expiring caption timer, or a replacing image all resolve the
pending image through `CorrelationStore.take`, so at most one note is ever
created for it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Protocol, Sequence, Set

from models.message import Message, MessageType, Outcome, StatusHint
from models.pending import ImageRef, PendingEntry
from services.blinko.client import NoteId, UpstreamError
from services.correlation.store import CorrelationStore
from services.correlation.timer import CaptionTimer
from utils.config import DEFAULT_CAPTION, DEFAULT_CAPTION_WINDOW

LOGGER = logging.getLogger(__name__)

IMAGE_PROMPT = "Image received. Send a caption within {seconds} seconds or it will be saved automatically."
IMAGE_NOTE_SAVED = "Image note saved"
TEXT_NOTE_SAVED = "Text note saved"
SAVE_FAILED = "Save failed"
UNSUPPORTED = "Unsupported message type"
MISSING_IMAGE = "Image message has no picture URL"


class UpstreamClient(Protocol):
	async def upload_image(self, source_url: str) -> ImageRef: ...

	async def create_note(self, content: str, attachments: Sequence[ImageRef] = ()) -> NoteId: ...


class CorrelationEngine:
	"""Drive image, text and timeout events for every sender."""

	def __init__(
		self,
		store: CorrelationStore,
		upstream: UpstreamClient,
		caption_window: float = DEFAULT_CAPTION_WINDOW,
		default_caption: str = DEFAULT_CAPTION,
	) -> None:
		if caption_window <= 0:
			raise ValueError("Caption window must be positive.")
		self.store = store
		self.upstream = upstream
		self.caption_window = caption_window
		self.default_caption = default_caption
		self._commits: Set[asyncio.Task] = set()
		self._closed = False

	async def handle(self, message: Message) -> Outcome:
		"""Apply one inbound message and return the reply for its sender."""
		if message.type is MessageType.IMAGE:
			return await self._accept_image(message)
		if message.type is MessageType.TEXT:
			return await self._accept_text(message)
		LOGGER.info("Unsupported message type from %s", message.sender_id)
		return Outcome(UNSUPPORTED, StatusHint.CLIENT_ERROR)

	async def _accept_image(self, message: Message) -> Outcome:
		sender = message.sender_id
		if not message.image_source_url:
			return Outcome(MISSING_IMAGE, StatusHint.CLIENT_ERROR)
		try:
			image = await self.upstream.upload_image(message.image_source_url)
		except UpstreamError as exc:
			LOGGER.error("Image upload failed for %s: %s", sender, exc)
			return Outcome(SAVE_FAILED, StatusHint.SERVER_ERROR)

		if self._closed:
			LOGGER.info("Dropping image %s for %s uploaded after shutdown", image.name, sender)
			return Outcome(SAVE_FAILED, StatusHint.SERVER_ERROR)
		self._await_caption(sender, image)
		return Outcome(IMAGE_PROMPT.format(seconds=_format_seconds(self.caption_window)))

	def _await_caption(self, sender: str, image: ImageRef) -> None:
		# Old timer is disposed before the new entry is stored; a fire already
		# in flight for the old entry then fails the identity check in take.
		superseded = self._claim(sender)
		if superseded is not None:
			LOGGER.info("Image %s for %s superseded by %s", superseded.image.name, sender, image.name)

		timer = CaptionTimer(self.caption_window)
		entry = PendingEntry(sender=sender, image=image, created_at=time.time(), timer=timer)
		self.store.put(sender, entry)
		timer.start(lambda: self._on_timer_fired(entry))
		LOGGER.info("Awaiting caption for %s from %s", image.name, sender)

	async def _accept_text(self, message: Message) -> Outcome:
		sender = message.sender_id
		content = message.content or ""
		entry = self._claim(sender)
		if entry is None:
			return await self._submit(sender, content, (), TEXT_NOTE_SAVED)
		return await self._submit(sender, content, (entry.image,), IMAGE_NOTE_SAVED)

	def _on_timer_fired(self, entry: PendingEntry) -> None:
		task = asyncio.ensure_future(self._expire(entry))
		self._commits.add(task)
		task.add_done_callback(self._commits.discard)

	async def _expire(self, entry: PendingEntry) -> None:
		if self._claim(entry.sender, expected=entry) is None:
			LOGGER.debug("Caption timer for %s lost the race; nothing to save", entry.sender)
			return
		try:
			note_id = await self.upstream.create_note(self.default_caption, [entry.image])
		except UpstreamError as exc:
			LOGGER.error("Auto-save of image %s for %s failed: %s", entry.image.name, entry.sender, exc)
			return
		LOGGER.info("Auto-saved image %s for %s as note %s", entry.image.name, entry.sender, note_id)

	def _claim(self, sender: str, expected: Optional[PendingEntry] = None) -> Optional[PendingEntry]:
		"""Take the pending entry for resolution and release its timer."""
		entry = self.store.take(sender, expected)
		if entry is not None:
			entry.timer.cancel()
		return entry

	async def _submit(self, sender: str, content: str, attachments: Sequence[ImageRef], saved_reply: str) -> Outcome:
		try:
			note_id = await self.upstream.create_note(content, list(attachments))
		except UpstreamError as exc:
			LOGGER.error("Note creation failed for %s: %s", sender, exc)
			return Outcome(SAVE_FAILED, StatusHint.SERVER_ERROR)
		LOGGER.info("Saved note %s for %s (%d attachment(s))", note_id, sender, len(attachments))
		return Outcome(saved_reply)

	async def shutdown(self) -> None:
		"""Drop every pending caption without saving it, then drain in-flight auto-saves."""
		self._closed = True
		for sender in self.store.senders():
			if self.store.cancel(sender):
				LOGGER.info("Cleared caption timer for %s", sender)
		if self._commits:
			await asyncio.gather(*list(self._commits), return_exceptions=True)

	@property
	def pending_count(self) -> int:
		return len(self.store)


def _format_seconds(window: float) -> str:
	return str(int(window)) if float(window).is_integer() else f"{window:g}"
