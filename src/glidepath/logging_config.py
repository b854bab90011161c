import logging
import logging.config
import os

LOG_DIR = "logs"


def build_logging_config(log_dir: str = LOG_DIR, console_level: str = "INFO") -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": console_level,
                "stream": "ext://sys.stderr",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": os.path.join(log_dir, "glidepath.log"),
                "maxBytes": 10_485_760,
                "backupCount": 5,
                "formatter": "standard",
                "level": "DEBUG",
            },
        },
        "loggers": {
            # Per-request access lines are noise next to engine timings
            "uvicorn.access": {"level": "WARNING"},
        },
        "root": {
            "level": "DEBUG",
            "handlers": ["console", "file"],
        },
    }


def setup_logging(verbose: bool = False, log_dir: str = LOG_DIR):
    os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig(
        build_logging_config(log_dir, console_level="DEBUG" if verbose else "INFO")
    )
