"""Logging levels and formatting shared by the imsync daemon.

``TRACE`` sits below DEBUG and is meant for the raw signal stream:
every D-Bus argument tuple and every notification the debouncer throws
away.  Importing this module once adds ``Logger.trace()``.

    import imsync.log
    logger = logging.getLogger(__name__)
    logger.trace("Signal %r", args)
"""

import logging

TRACE: int = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = '[%(asctime)s] %(levelname)-8s %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _trace(self: logging.Logger, message: object, *args: object, **kwargs: object) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)  # type: ignore[attr-defined]


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _trace  # type: ignore[attr-defined]


def verbosity(debug: bool = False, trace: bool = False) -> int:
    """Logger level for the ``--debug`` / ``--trace`` command-line flags."""
    if trace:
        return TRACE
    return logging.DEBUG if debug else logging.INFO


def formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
