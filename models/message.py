"""Normalized inbound messages and the outcomes returned for them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MessageType(str, Enum):
    IMAGE = "image"
    TEXT = "text"
    OTHER = "other"


class StatusHint(str, Enum):
    OK = "ok"
    CLIENT_ERROR = "clientError"
    SERVER_ERROR = "serverError"


@dataclass(frozen=True)
class Message:
    """A platform event after signature verification and decoding.

    Attributes:
        sender_id: Opaque identity of the remote user; the correlation key.
        type: Kind of event; anything the relay does not model is `OTHER`.
        content: Text body for `TEXT` messages.
        image_source_url: Where the image bytes can be fetched for `IMAGE` messages.
    """

    sender_id: str
    type: MessageType
    content: Optional[str] = None
    image_source_url: Optional[str] = None


@dataclass(frozen=True)
class Outcome:
    """Result of a request-triggered transition, rendered by the gateway."""

    reply_text: Optional[str]
    status_hint: StatusHint = StatusHint.OK

    @property
    def ok(self) -> bool:
        return self.status_hint is StatusHint.OK
