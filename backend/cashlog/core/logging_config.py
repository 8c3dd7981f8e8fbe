from logging.config import dictConfig

from cashlog.core.config import settings


def configure_logging(level: str | None = None) -> None:
    lvl = (level or settings.log_level or "INFO").upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "verbose": {
                    "format": "[{asctime}] {levelname} {name} {message}",
                    "style": "{",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "verbose",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                "cashlog": {"handlers": ["console"], "level": lvl, "propagate": False},
                "sqlalchemy.engine": {"handlers": ["console"], "level": "WARNING", "propagate": False},
            },
            "root": {"handlers": ["console"], "level": "WARNING"},
        }
    )
