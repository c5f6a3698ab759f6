import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from routes.wechat_route import router as wechat_router
from services.blinko.client import BlinkoClient
from services.correlation.engine import CorrelationEngine, UpstreamClient
from services.correlation.store import CorrelationStore
from utils.config import Settings, load_settings
from utils.logging_config import ACCESS_LOGGER, configure_logging

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)
ACCESS_LOG = logging.getLogger(ACCESS_LOGGER)


def create_app(settings: Optional[Settings] = None, upstream: Optional[UpstreamClient] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        settings: Configuration to use; loaded from the environment when omitted.
        upstream: Note-service client; a `BlinkoClient` is built in the lifespan when omitted.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - the shared httpx client and Blinko client (unless one was injected)
          - the correlation store and engine
        and attach them to `app.state`. On shutdown every pending caption is
        dropped before the HTTP client is closed.
        """
        http_client: Optional[httpx.AsyncClient] = None
        client = upstream
        if client is None:
            http_client = httpx.AsyncClient(timeout=settings.upstream_timeout)
            client = BlinkoClient(http_client, settings.blinko_api_url, settings.blinko_api_token)

        store = CorrelationStore()
        app.state.store = store
        app.state.engine = CorrelationEngine(
            store,
            client,
            caption_window=settings.caption_window,
            default_caption=settings.default_caption,
        )
        LOGGER.info("Relay started; caption window %ss", settings.caption_window)

        try:
            yield
        finally:
            await app.state.engine.shutdown()
            if http_client is not None:
                await http_client.aclose()
            LOGGER.info("Relay stopped")

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        client_host = request.client.host if request.client else None
        ACCESS_LOG.info(
            "Incoming request: %s %s query=%s ip=%s",
            request.method,
            request.url.path,
            dict(request.query_params),
            client_host,
        )
        return await call_next(request)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        LOGGER.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return PlainTextResponse("Internal Server Error", status_code=500)

    @app.get("/health")
    async def health(request: Request):
        """
        Liveness check reporting how many senders are awaiting a caption.
        """
        engine = getattr(request.app.state, "engine", None)
        return {"ok": engine is not None, "pending_captions": engine.pending_count if engine else 0}

    app.include_router(wechat_router)

    return app


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_dir, console=not settings.production)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
