"""Settings loaded once from environment variables."""

import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar

T = TypeVar("T")

DEFAULT_CAPTION_WINDOW = 30.0
DEFAULT_CAPTION = "Image received via WeChat"


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration.

    Attributes:
        wechat_token: Token configured on the official-account platform.
        blinko_api_url: Base URL of the Blinko note service.
        blinko_api_token: Bearer credential for the note service.
        caption_window: Seconds a pending image waits for a caption.
        default_caption: Note content used when the window expires.
        upstream_timeout: Timeout in seconds for each upstream HTTP call.
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
        log_level: Root log level name.
        log_dir: Directory for the file logs.
        environment: Deployment name; "production" disables console logs.
    """

    wechat_token: str
    blinko_api_url: str
    blinko_api_token: str
    caption_window: float = DEFAULT_CAPTION_WINDOW
    default_caption: str = DEFAULT_CAPTION
    upstream_timeout: float = 15.0
    host: str = "0.0.0.0"
    port: int = 9006
    log_level: str = "INFO"
    log_dir: str = "logs"
    environment: str = "development"

    @property
    def production(self) -> bool:
        return self.environment.lower() == "production"


def _required(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or "").strip()
    if not value:
        raise ConfigurationError(f"{name} environment variable is not set")
    return value


def _number(env: Mapping[str, str], name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name}={raw!r} is not a valid number") from exc


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build `Settings` from `env` (defaults to `os.environ`).

    Raises:
        ConfigurationError: If a required variable is missing or a number is invalid.
    """
    env = os.environ if env is None else env

    caption_window = _number(env, "CAPTION_WINDOW_SECONDS", DEFAULT_CAPTION_WINDOW, float)
    if caption_window <= 0:
        raise ConfigurationError("CAPTION_WINDOW_SECONDS must be positive")

    return Settings(
        wechat_token=_required(env, "WECHAT_TOKEN"),
        blinko_api_url=_required(env, "BLINKO_API_URL").rstrip("/"),
        blinko_api_token=_required(env, "BLINKO_API_TOKEN"),
        caption_window=caption_window,
        default_caption=(env.get("DEFAULT_CAPTION") or "").strip() or DEFAULT_CAPTION,
        upstream_timeout=_number(env, "UPSTREAM_TIMEOUT_SECONDS", 15.0, float),
        host=(env.get("SERVER_HOST") or "").strip() or "0.0.0.0",
        port=_number(env, "SERVER_PORT", 9006, int),
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
        log_dir=(env.get("LOG_DIR") or "").strip() or "logs",
        environment=(env.get("ENVIRONMENT") or "").strip() or "development",
    )
