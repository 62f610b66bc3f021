"""Logging setup for the erpstats command line."""

import logging

import click

LOGGER_NAME = "erpstats"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ClickEchoHandler(logging.Handler):
    """Writes log records to the current stderr through ``click.echo``."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach a single stderr handler to the package logger.

    Calling it again only adjusts the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)

    handler = next((h for h in logger.handlers if isinstance(h, ClickEchoHandler)), None)
    if handler is None:
        handler = ClickEchoHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    handler.setLevel(level)
    return logger
