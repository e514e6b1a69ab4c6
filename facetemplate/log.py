"""Logging setup."""

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name):
    """Return the module logger."""
    return logging.getLogger(name)


def setup_logging(verbose: bool = False):
    """Configure the root logger for command line runs."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
