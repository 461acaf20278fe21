import logging
import sys

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "redis")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Send logs to stdout and set the level of the ``shortlink`` loggers.

    Called once at import with the default and again at startup with
    ``Settings.LOG_LEVEL``; only the first call installs the handler.
    """
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    app_logger = logging.getLogger("shortlink")
    app_logger.setLevel(level.upper())

    uvicorn_error = logging.getLogger("uvicorn.error")
    uvicorn_error.propagate = True
    uvicorn_error.setLevel(level.upper())
    # shorten/redirect already log each request with its short code
    logging.getLogger("uvicorn.access").disabled = True

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return app_logger
