import logging

_CHATTY_LIBRARY_LOGGERS = ("httpx", "httpcore", "openai", "asyncpg")


def configure_logging(log_level: str) -> None:
    """Configure process-wide logging for the podcast backend and its stream client.

    HTTP and provider client libraries log every request at INFO; they are held at
    WARNING unless the service itself runs at DEBUG.
    """

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    library_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _CHATTY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
