"""FastAPI routes for the WeChat official-account webhook."""

from fastapi import APIRouter, Request

from controllers.wechat_controller import receive_message, verify_endpoint

router = APIRouter(prefix="/wechat")


@router.get("")
async def verify_route(request: Request):
	"""Platform server-address verification."""
	return await verify_endpoint(request)


@router.post("")
async def message_route(request: Request):
	"""Inbound message push from the platform."""
	return await receive_message(request)
