from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}

_LEVEL_PREFIX: dict[int, str] = {
    logging.WARNING: "⚠️ ",
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
}

# Third-party loggers that flood the output below WARNING
_NOISY_LOGGERS = ("httpx", "httpcore", "PIL", "multipart")


class OwnerContextFilter(logging.Filter):
    """Make sure every record carries an ``owner_id`` attribute.

    Services pass ``extra={"owner_id": ...}`` for tenant-scoped operations;
    records without it get "-" so format strings referencing the field never fail.
    """

    def filter(self, record):
        if not hasattr(record, "owner_id"):
            record.owner_id = "-"
        return True


class CustomFormatter(logging.Formatter):
    """Formats timestamps in the configured timezone and prefixes warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # malformed third-party log call, keep the raw template
            message = str(record.msg)

        record.msg = _LEVEL_PREFIX.get(record.levelno, "") + message
        # args are already merged into msg
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter that wraps a line in the ANSI color named by ``record.color``."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Wraps a :class:`logging.Logger` and accepts an optional ``color=`` keyword.

    Usage::

        logger.info("Indexed %d chunks", 12, color="green", extra={"owner_id": owner_id})

    The color only reaches the console handler; the log file stays plain.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _emit(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs = {**kwargs, "extra": {**(kwargs.get("extra") or {}), "color": color}}
        # keep the caller's frame as record origin
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._emit(level, msg, args, color, kwargs)

    def __getattr__(self, name):
        # setLevel, handlers, isEnabledFor, ...
        return getattr(self._logger, name)


def _build_config(log_file: str, tz_name: str) -> dict:
    def formatter(cls, fmt: str) -> dict:
        return {"()": cls, "format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S", "tz_name": tz_name}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "owner_context": {"()": OwnerContextFilter},
        },
        "formatters": {
            "standard": formatter(CustomFormatter, "%(asctime)s - %(levelname)s - [owner=%(owner_id)s] %(message)s"),
            "colored": formatter(ColoredFormatter, "%(asctime)s - %(levelname)s - %(message)s"),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "filters": ["owner_context"],
                "level": loglevel,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "standard",
                "filters": ["owner_context"],
                "level": loglevel,
                "filename": log_file,
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": loglevel,
        },
    }


def setup_logging() -> ColorLogger:
    """Configure console and file logging and return the application logger.

    Logs go to ``$ROOT_DIR/logs/app.log`` (working directory if ROOT_DIR is
    unset) with timestamps in ``$TIMEZONE``. ``LOG_LEVEL=debug`` enables
    debug output, including the otherwise muted HTTP and image libraries.
    """
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(_build_config(
        log_file=os.path.join(log_dir, "app.log"),
        tz_name=os.getenv("TIMEZONE", "Asia/Riyadh"),
    ))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger("knowledge_base"))
