import logging
import logging.config
import queue
from enum import Enum
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from typing import Any

import uvicorn

from shms.core.utils.config import Settings


class ColoredConsoleFormatter(uvicorn.logging.DefaultFormatter):
    class ConsoleColors(str, Enum):
        """Colors can be found here: https://talyian.github.io/ansicolors/"""

        DEBUG = "\033[38;5;12m"
        INFO = "\033[38;5;10m"
        WARNING = "\033[38;5;11m"
        ERROR = "\033[38;5;9m"
        CRITICAL = "\033[38;5;1m"
        BOLD = "\033[1m"
        END = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(datefmt="%d-%b-%y %H:%M:%S")

        self.formatters = {}

        for level in [
            logging.DEBUG,
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
            logging.CRITICAL,
        ]:
            fmt = (
                "%(asctime)s - %(name)s - "
                + self.ConsoleColors.BOLD
                + "%(levelname)s"
                + self.ConsoleColors.END
                + " - "
                + self.ConsoleColors[logging.getLevelName(level)]
                + "%(message)s"
                + self.ConsoleColors.END
            )
            self.formatters[level] = logging.Formatter(fmt, self.datefmt)

    def format(self, record: logging.LogRecord) -> str:
        formatter: logging.Formatter = self.formatters.get(
            record.levelno,
            self.formatters[logging.ERROR],
        )
        return formatter.format(record)


class LogConfig:
    """
    Logging configuration of the server, built as a dict for `logging.config.dictConfig`.

    Call `LogConfig().initialize_loggers()` once, when the application is created.
    """

    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FOLDER: Path = Path("logs")

    # Each SHMS logger writes to its own rotating file, and to the console
    # name: (file name, max size in MB, number of kept files)
    LOG_FILES: dict[str, tuple[str, int, int]] = {
        # One line per incoming request
        "shms.access": ("access.log", 40, 50),
        # Login attempts, code verifications, rejected session tokens and denied accesses
        "shms.security": ("security.log", 40, 50),
        # Every error that is not specific to the previous loggers
        "shms.error": ("errors.log", 10, 20),
    }

    def get_file_handler(
        self,
        file_name: str,
        max_megabytes: int,
        backup_count: int,
    ) -> dict[str, Any]:
        # https://docs.python.org/3/library/logging.handlers.html#logging.handlers.RotatingFileHandler
        return {
            "formatter": "default",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(self.LOG_FOLDER / file_name),
            "maxBytes": 1024 * 1024 * max_megabytes,
            "backupCount": backup_count,
            "level": "INFO",
        }

    def get_config_dict(self, settings: Settings) -> dict[str, Any]:
        # Settings are passed as a parameter as this is not called from an endpoint
        minimum_level = "DEBUG" if settings.LOG_DEBUG_MESSAGES else "INFO"

        handlers: dict[str, dict[str, Any]] = {
            "console": {
                "formatter": "console_formatter",
                "class": "logging.StreamHandler",
                "level": minimum_level,
            },
        }
        loggers: dict[str, dict[str, Any]] = {
            "root": {"level": "DEBUG", "handlers": ["console"]},
            "shms": {"propagate": False},
        }
        for logger_name, (file_name, max_megabytes, backup_count) in self.LOG_FILES.items():
            handler_name = "file_" + logger_name.removeprefix("shms.")
            handlers[handler_name] = self.get_file_handler(
                file_name=file_name,
                max_megabytes=max_megabytes,
                backup_count=backup_count,
            )
            loggers[logger_name] = {
                "handlers": [handler_name, "console"],
                "level": minimum_level,
            }

        # shms.access replaces uvicorn.access, it also logs the request id
        loggers["uvicorn.access"] = {"handlers": []}
        loggers["uvicorn.error"] = {
            "handlers": ["file_error", "console"],
            "level": minimum_level,
            "propagate": False,
        }

        return {
            "version": 1,
            # Database and uvicorn loggers are kept only when debugging
            "disable_existing_loggers": not settings.LOG_DEBUG_MESSAGES,
            "formatters": {
                "default": {
                    "format": self.LOG_FORMAT,
                    "datefmt": "%d-%b-%y %H:%M:%S",
                },
                "console_formatter": {
                    "()": "shms.core.utils.log.ColoredConsoleFormatter",
                },
            },
            "handlers": handlers,
            "loggers": loggers,
        }

    def initialize_loggers(self, settings: Settings) -> None:
        """
        Configure the logging ecosystem.

        Endpoints log from the event loop, so handlers must not block it:
        every handler is moved behind a QueueHandler and records are processed by a QueueListener thread.
        """
        # https://rob-blackbourn.medium.com/how-to-use-python-logging-queuehandler-with-dictconfig-1e8b1284e27a

        # File handlers can not create the folder themselves
        self.LOG_FOLDER.mkdir(parents=True, exist_ok=True)

        config_dict = self.get_config_dict(settings=settings)
        logging.config.dictConfig(config_dict)

        for logger_name in config_dict["loggers"]:
            logger = logging.getLogger(logger_name)
            if not logger.handlers:
                continue

            log_queue: queue.Queue[Any] = queue.Queue(-1)
            listener = QueueListener(
                log_queue,
                *logger.handlers,
                respect_handler_level=True,
            )
            listener.start()

            logger.handlers = [QueueHandler(log_queue)]
