"""Gateway between WeChat push requests and the correlation engine."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response

from models.message import Outcome, StatusHint
from services.correlation.engine import CorrelationEngine
from services.wechat.signature import check_signature
from services.wechat.xml_codec import (
	InboundEnvelope,
	MessageDecodeError,
	parse_envelope,
	render_error_reply,
	render_failure,
	render_text_reply,
)
from utils.config import Settings

LOGGER = logging.getLogger(__name__)

XML_MEDIA_TYPE = "application/xml"
STATUS_CODES = {
	StatusHint.OK: 200,
	StatusHint.CLIENT_ERROR: 400,
	StatusHint.SERVER_ERROR: 500,
}


def _is_authentic(request: Request) -> bool:
	settings: Settings = request.app.state.settings
	query = request.query_params
	return check_signature(settings.wechat_token, query.get("signature"), query.get("timestamp"), query.get("nonce"))


async def verify_endpoint(request: Request) -> Response:
	"""Answer the platform's server-address check by echoing `echostr`."""
	if not _is_authentic(request):
		LOGGER.warning("Rejected endpoint verification with a bad signature")
		return PlainTextResponse("Invalid Signature", status_code=403)
	return PlainTextResponse(request.query_params.get("echostr", ""))


async def receive_message(request: Request) -> Response:
	"""Verify, decode and relay one push event, replying in WeChat XML."""
	if not _is_authentic(request):
		LOGGER.warning("Rejected push with a bad signature")
		return PlainTextResponse("Invalid Signature", status_code=403)

	envelope: Optional[InboundEnvelope] = None
	try:
		envelope = parse_envelope(await request.body())
	except MessageDecodeError as exc:
		LOGGER.warning("Undecodable push body: %s", exc)
		return Response(render_failure(str(exc)), status_code=400, media_type=XML_MEDIA_TYPE)

	engine: CorrelationEngine = request.app.state.engine
	try:
		outcome = await engine.handle(envelope.to_message())
	except Exception:
		LOGGER.exception("Error processing message %s from %s", envelope.msg_id, envelope.from_user_name)
		return Response(
			render_error_reply(envelope, "internal server error"),
			status_code=500,
			media_type=XML_MEDIA_TYPE,
		)
	return _render(envelope, outcome)


def _render(envelope: InboundEnvelope, outcome: Outcome) -> Response:
	status_code = STATUS_CODES[outcome.status_hint]
	if outcome.reply_text is None:
		return Response(status_code=status_code)
	reply = render_text_reply(envelope.from_user_name, envelope.to_user_name, outcome.reply_text)
	return Response(reply, status_code=status_code, media_type=XML_MEDIA_TYPE)
