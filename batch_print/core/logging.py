from logging.config import dictConfig


def setup_logging(level: str = "INFO") -> None:
    """Настройка логирования приложения"""
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "loggers": {
            "batch_print": {"level": level.upper(), "handlers": ["console"], "propagate": False},
            # pypdf и xhtml2pdf слишком многословны на уровне INFO
            "pypdf": {"level": "WARNING"},
            "xhtml2pdf": {"level": "WARNING"},
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
    })
