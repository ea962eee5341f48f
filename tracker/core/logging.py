import logging
import logging.config
from typing import Any, Dict

def get_logging_config(level: str = "INFO", sql_echo: bool = False) -> Dict[str, Any]:
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "tracker": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "INFO" if sql_echo else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "aio_pika": {"level": "WARNING"},
            "botocore": {"level": "WARNING"},
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }

def setup_logging(level: str = "INFO", sql_echo: bool = False) -> None:
    """Configura il logging dell'applicazione (console, livello da settings)."""
    logging.config.dictConfig(get_logging_config(level, sql_echo))
    logging.getLogger("tracker").info("Logging initialized", extra={"level": level.upper()})
