import logging
from logging.config import dictConfig
from typing import Optional


LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'bold_red',
}


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    handlers = ["console"]

    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            # Formatter for console
            "colored": {
                "()": "colorlog.ColoredFormatter",
                "format": "%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "log_colors": LOG_COLORS,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored"
            },
        },
        "loggers": {
            "requestkit": {
                "handlers": handlers,
                "level": level.upper(),
                "propagate": False,
            },
            "uvicorn": {
                "level": "WARNING",
            },
            "watchfiles": {
                "level": "WARNING",
            },
        },
    }

    # File handler (without color)
    if log_file:
        LOGGING_CONFIG["handlers"]["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "formatter": "default",
        }
        handlers.append("file")

    dictConfig(LOGGING_CONFIG)

    # Explicitly set these to avoid conflicts
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("watchfiles").setLevel(logging.WARNING)
