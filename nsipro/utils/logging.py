"""Logging utilities for nsipro."""

import logging


def setup_loggers(log_level):
    """
    Set logging level of all nsipro loggers.

    Parameters
    ----------
    log_level : int
        The level of logging, such as ``logging.DEBUG``
    """
    logging.basicConfig(
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        level=log_level,
    )
    loggers = [
        logging.getLogger(name)
        for name in logging.root.manager.loggerDict  # pylint: disable=no-member
        if name.startswith("nsipro")
    ]
    for _logger in loggers:
        _logger.setLevel(log_level)


def add_file_handlers(log_dir):
    """
    Attach the persistent log files to the root logger.

    Two files are written in ``log_dir``: ``nsipro-parser.log`` receives
    everything at INFO and above, ``nsipro-parser.err.log`` only errors.
    Existing file handlers on the root logger are removed first so repeated
    invocations in one process do not duplicate output.

    Parameters
    ----------
    log_dir : pathlib.Path
        Directory for the log files; created if needed

    Returns
    -------
    list[logging.FileHandler]
        The handlers that were added
    """
    for handler in logging.root.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            logging.root.removeHandler(handler)
            handler.close()

    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter("%(asctime)s %(name)s %(levelname)s: %(message)s")

    handlers = []
    for filename, level in (
        ("nsipro-parser.log", logging.INFO),
        ("nsipro-parser.err.log", logging.ERROR),
    ):
        handler = logging.FileHandler(log_dir / filename)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logging.root.addHandler(handler)
        handlers.append(handler)

    return handlers
