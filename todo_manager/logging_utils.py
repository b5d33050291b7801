import logging
import sys
from typing import Any

# Third-party loggers that are too chatty at INFO for day-to-day use
_NOISY_LOGGERS = ("sqlalchemy.engine", "multipart")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only realign the level.

    Line format: time level logger event k=v ...
    """
    level = level.upper()
    root = logging.getLogger()
    for name in _NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        if noisy.level == logging.NOTSET:  # DB_ECHO sets its own level
            noisy.setLevel(logging.WARNING)

    if root.handlers:
        # uvicorn and pytest install their own handlers; keep them
        root.setLevel(level)
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(level)


def _fmt(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() for ch in text):
        return f'"{text}"'
    return text


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit ``event k=v ...`` with fields in call order; None values are skipped."""
    if not logger.isEnabledFor(level):
        return
    parts = [event]
    parts.extend(f"{key}={_fmt(value)}" for key, value in fields.items() if value is not None)
    logger.log(level, " ".join(parts))
