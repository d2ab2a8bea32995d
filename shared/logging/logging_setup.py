from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

APP_LOGGER_NAME = "docscope"

# Supported ANSI color names for the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
}

_LEVEL_PREFIX: dict[int, str] = {
    logging.CRITICAL: "⛔ ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}


class CustomFormatter(logging.Formatter):
    """Formats timestamps in the configured timezone and prefixes warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        # the record is shared by all handlers, render and freeze it once
        message = record.getMessage()
        prefix = _LEVEL_PREFIX.get(record.levelno, "")
        if prefix and not message.startswith(prefix):
            message = prefix + message
        record.msg = message
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter that colors a line if the record carries a ``color`` attribute."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger:
    """Wraps a :class:`logging.Logger` and accepts an optional ``color=`` keyword.

    Usage::

        logger.info("Loaded %d documents", 12)
        logger.info("Session ready", color="green")

    Colors only show up on the console handler; the log file stays plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _emit(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
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

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        """Delegate everything else (setLevel, handlers, ...) to the wrapped logger."""
        return getattr(self._logger, name)


def setup_logging(log_to_file: bool = True) -> ColorLogger:
    """Configures console and file logging and returns the application logger.

    Log files go to ``$ROOT_DIR/logs/app.log`` (current directory if ROOT_DIR is unset).
    """
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": loglevel,
            "stream": "ext://sys.stdout",
        },
    }
    if log_to_file:
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": loglevel,
            "filename": os.path.join(log_dir, "app.log"),
            "encoding": "utf-8",
        }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "()": CustomFormatter,
                "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers),
            "level": loglevel,
        },
    }

    logging.config.dictConfig(logging_config)

    # Suppress httpx request logs unless in debug mode
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger(APP_LOGGER_NAME))
