import logging
import logging.config
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILENAME = "reconciler.log"

# Libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


class ColourizedFormatter(logging.Formatter):
    """Colours the level name; used only when stderr is a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[90m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    RESET = "\x1b[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLORS.get(record.levelno)
        if colour is None:
            return super().format(record)

        plain_levelname = record.levelname
        record.levelname = f"{colour}{plain_levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # The file handler formats the same record
            record.levelname = plain_levelname


def _build_handlers(log_dir: str | None, colour: bool) -> dict[str, dict]:
    # stdout carries the command's own output, so logs go to stderr
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
            "formatter": "colour" if colour else "plain",
        },
    }
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": os.path.join(log_dir, LOG_FILENAME),
            "encoding": "utf-8",
            "formatter": "plain",
        }
    return handlers


def get_logging_config(level: str | None = None, colour: bool | None = None) -> dict:
    """dictConfig for the CLI.

    ``level`` overrides ``LOG_LEVEL``. ``colour`` defaults to whether stderr
    is a terminal. ``LOG_DIR`` adds a plain-text file handler.
    """
    if colour is None:
        colour = sys.stderr.isatty()
    handlers = _build_handlers(os.getenv("LOG_DIR"), colour)

    loggers: dict[str, dict] = {
        "": {
            "handlers": list(handlers),
            "level": (level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        },
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "colour": {
                "()": "statement_reconciler.logger.ColourizedFormatter",
                "format": LOG_FORMAT,
            },
            "plain": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def setup_logging(level: str | None = None) -> None:
    logging.config.dictConfig(get_logging_config(level))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
