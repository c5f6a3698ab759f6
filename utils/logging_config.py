"""File and console logging for the relay."""

import logging
from pathlib import Path

ACCESS_LOGGER = "access"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO", log_dir: str = "logs", console: bool = True) -> None:
    """Install the error, app and access file logs, plus console output when asked.

    - error.log: ERROR and above from every logger.
    - app.log: everything at `level` and above.
    - access.log: request lines from the `access` logger only.
    """
    directory = Path(log_dir).expanduser()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except Exception as exc:
        raise RuntimeError(f"Failed to create log directory at {directory}") from exc

    formatter = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    error_handler = logging.FileHandler(directory / "error.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    app_handler = logging.FileHandler(directory / "app.log", encoding="utf-8")
    for handler in (error_handler, app_handler):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        root.addHandler(stream)

    access = logging.getLogger(ACCESS_LOGGER)
    for handler in list(access.handlers):
        access.removeHandler(handler)
        handler.close()
    access_handler = logging.FileHandler(directory / "access.log", encoding="utf-8")
    access_handler.setFormatter(formatter)
    access.addHandler(access_handler)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
