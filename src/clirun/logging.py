# ==================================================================================================
#                                   Logging
# ==================================================================================================
#
# Tiny logging bootstrap used by the console entry point. Library modules only
# call `logging.getLogger(__name__)`; handlers are configured here, once, and
# never write to the command output sink.

import logging

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure global logging once.

    Parameters
    ----------
    level
        Logging level.

    Usage example
    -------------
        configure_logging()
        logging.getLogger(__name__).info("hello")
    """
    # Repeated calls keep existing handlers (no `force=True`) so embedding
    # applications keep their own setup.
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def level_from_name(name: str) -> int:
    """
    Translate a config level name ("info", "DEBUG", ...) to a logging level.

    Raises
    ------
    ValueError
        If the name is not a known level.
    """
    key = str(name).strip().upper()
    if key not in _LEVELS:
        raise ValueError(f"Unknown logging level: {name!r}")
    return _LEVELS[key]
