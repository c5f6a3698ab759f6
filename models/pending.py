from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from services.correlation.timer import CaptionTimer


@dataclass(frozen=True)
class ImageRef:
    """Reference to an image already uploaded to the note service.

    Attributes:
        path: Server-side path returned by the upload endpoint.
        name: Stored file name.
        mime_type: Content type reported by the note service.
        size_bytes: Size of the stored file.
    """

    path: str
    name: str
    mime_type: str
    size_bytes: int

    def as_attachment(self) -> Dict[str, Any]:
        """Return the attachment shape expected by the note endpoint."""
        return {
            "path": self.path,
            "name": self.name,
            "type": self.mime_type,
            "size": self.size_bytes,
        }


@dataclass(frozen=True, eq=False)
class PendingEntry:
    """An uploaded image waiting for an optional caption.

    Entries compare by identity so a stale timer can tell whether the entry it
    was armed for is still the one stored for its sender.
    """

    sender: str
    image: ImageRef
    created_at: float
    timer: "CaptionTimer"
