"""Logging setup for the reconstruction pipeline.

Module loggers of the ``drtrack`` package share one stream handler
installed on the package logger, so every stage reports in the same
format and an application can silence or redirect them all at once.
Loggers outside the package get a handler of their own.
"""

import logging

PACKAGE = "drtrack"
LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _install_handler(logger: logging.Logger, level: int) -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Return a logger that writes through the shared pipeline handler.

    Parameters
    ----------
    name : str
        Logger name, usually ``__name__``.
    level : int, optional
        Level set when the handler is first installed.

    Returns
    -------
    logging.Logger
    """
    logger = logging.getLogger(name)
    if name == PACKAGE or name.startswith(PACKAGE + "."):
        _install_handler(logging.getLogger(PACKAGE), level)
    else:
        _install_handler(logger, level)
    return logger
