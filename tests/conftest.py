import asyncio
from typing import List, Optional, Sequence, Tuple

import pytest

from models.pending import ImageRef
from services.blinko.client import UpstreamError
from services.correlation.engine import CorrelationEngine
from services.correlation.store import CorrelationStore

WINDOW = 0.05


class FakeUpstream:
    """Records every call; images are named after the URL they came from."""

    def __init__(self) -> None:
        self.uploads: List[str] = []
        self.notes: List[Tuple[str, List[ImageRef]]] = []
        self.fail_uploads = False
        self.fail_notes = False
        self.note_delay = 0.0
        self.upload_delay = 0.0

    async def upload_image(self, source_url: str) -> ImageRef:
        self.uploads.append(source_url)
        if self.upload_delay:
            await asyncio.sleep(self.upload_delay)
        if self.fail_uploads:
            raise UpstreamError("upload refused")
        name = source_url.rsplit("/", 1)[-1]
        return ImageRef(path=f"/files/{name}", name=name, mime_type="image/jpeg", size_bytes=1024)

    async def create_note(self, content: str, attachments: Sequence[ImageRef] = ()) -> int:
        if self.note_delay:
            await asyncio.sleep(self.note_delay)
        if self.fail_notes:
            raise UpstreamError("note refused")
        self.notes.append((content, list(attachments)))
        return len(self.notes)

    def notes_for(self, image_name: str) -> List[Tuple[str, List[ImageRef]]]:
        return [note for note in self.notes if any(ref.name == image_name for ref in note[1])]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def store() -> CorrelationStore:
    return CorrelationStore()


@pytest.fixture
async def engine(store: CorrelationStore, upstream: FakeUpstream):
    engine = CorrelationEngine(store, upstream, caption_window=WINDOW, default_caption="auto caption")
    yield engine
    await engine.shutdown()


def image_of(name: str) -> ImageRef:
    return ImageRef(path=f"/files/{name}", name=name, mime_type="image/jpeg", size_bytes=1024)


async def settle(seconds: Optional[float] = None) -> None:
    """Wait past the caption window and let scheduled auto-saves finish."""
    await asyncio.sleep(WINDOW * 3 if seconds is None else seconds)
    for _ in range(5):
        await asyncio.sleep(0)
