"""Decode WeChat push events and render passive text replies."""

from __future__ import annotations

import time
import xml.etree.ElementTree as ET
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from models.message import Message, MessageType


class MessageDecodeError(ValueError):
    """Raised when a push body is not a usable WeChat XML event."""


class InboundEnvelope(BaseModel):
    """Fields of a WeChat push event the relay reads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    to_user_name: str = Field(alias="ToUserName")
    from_user_name: str = Field(alias="FromUserName")
    msg_type: str = Field(alias="MsgType")
    create_time: Optional[int] = Field(default=None, alias="CreateTime")
    content: Optional[str] = Field(default=None, alias="Content")
    pic_url: Optional[str] = Field(default=None, alias="PicUrl")
    msg_id: Optional[str] = Field(default=None, alias="MsgId")

    def to_message(self) -> Message:
        """Normalize the envelope into the relay's message shape."""
        kind = self.msg_type.strip().lower()
        if kind == MessageType.TEXT.value:
            return Message(sender_id=self.from_user_name, type=MessageType.TEXT, content=self.content or "")
        if kind == MessageType.IMAGE.value:
            return Message(sender_id=self.from_user_name, type=MessageType.IMAGE, image_source_url=self.pic_url)
        return Message(sender_id=self.from_user_name, type=MessageType.OTHER)


def parse_envelope(body: bytes | str) -> InboundEnvelope:
    """Parse the `<xml>` push body into an `InboundEnvelope`.

    Raises:
        MessageDecodeError: If the body is not XML or misses required fields.
    """
    if not body:
        raise MessageDecodeError("Empty message body.")
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise MessageDecodeError(f"Invalid XML: {exc}") from exc

    fields = {}
    for child in root:
        if child.text is None:
            continue
        # Caption text is kept verbatim; only structural fields are trimmed.
        value = child.text if child.tag == "Content" else child.text.strip()
        if value:
            fields[child.tag] = value
    try:
        return InboundEnvelope.model_validate(fields)
    except ValidationError as exc:
        raise MessageDecodeError(f"Incomplete message: {exc.error_count()} invalid field(s)") from exc


def _cdata(text: str) -> str:
    # "]]>" cannot appear inside one CDATA section; split it across two.
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def render_text_reply(to_user: str, from_user: str, content: str, create_time: Optional[int] = None) -> str:
    """Render a passive text reply addressed to `to_user`."""
    timestamp = int(time.time()) if create_time is None else create_time
    return (
        "<xml>"
        f"<ToUserName>{_cdata(to_user)}</ToUserName>"
        f"<FromUserName>{_cdata(from_user)}</FromUserName>"
        f"<CreateTime>{timestamp}</CreateTime>"
        "<MsgType><![CDATA[text]]></MsgType>"
        f"<Content>{_cdata(content)}</Content>"
        "</xml>"
    )


def render_failure(message: str) -> str:
    """Render the bare failure body used when no sender is known."""
    return f"<xml><Return>FAIL</Return><Message>{_cdata(message)}</Message></xml>"


def render_error_reply(envelope: Optional[InboundEnvelope], message: str) -> str:
    """Reply to the sender with an error text when possible, else a failure body."""
    if envelope is not None:
        return render_text_reply(envelope.from_user_name, envelope.to_user_name, f"Error: {message}")
    return render_failure(message)
