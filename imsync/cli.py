#!/usr/bin/env python3
"""
imsync CLI entry point with file + console logging
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import sys
import traceback
from pathlib import Path

from imsync.__version__ import __version__
from imsync.config import FOCUS_BACKENDS, RESET_METHODS, TRANSPORTS, load_config, validate_config
from imsync.log import formatter, verbosity

# Global logger instance
logger = None


def setup_logging(debug: bool = False, log_file: str | None = None,
                  trace: bool = False) -> logging.Logger:
    """Setup logging to both console and file

    Args:
        debug: Enable debug level logging
        log_file: Path to log file (default: ~/.imsync.log)
        trace: Also log every raw D-Bus signal
    """
    global logger

    if logger is not None:
        return logger

    level = verbosity(debug, trace)
    logger = logging.getLogger('imsync')
    logger.setLevel(level)

    if log_file is None:
        log_file = os.path.expanduser('~/.imsync.log')

    fmt = formatter()

    # File handler (rotate log file when it gets too large)
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=1024*1024,  # 1 MB
            backupCount=3
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(fmt)
        logger.addHandler(file_handler)
    except OSError as e:
        print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

    # Console handler (warnings in production, everything in debug)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level if debug or trace else logging.WARNING)
    console_handler.setFormatter(fmt)
    logger.addHandler(console_handler)

    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='imsync',
        description='Keep the editor input method in step with the desktop layout switcher',
    )
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug mode with verbose logging')
    parser.add_argument('--trace', action='store_true',
                        help='Log every raw D-Bus signal (implies verbose console output)')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to config file (default: ~/.config/imsync/config.json)')
    parser.add_argument('--logfile', type=str, default=None,
                        help='Path to log file (default: ~/.imsync.log)')
    parser.add_argument('--transport', choices=TRANSPORTS, default=None,
                        help='Notification source to listen to')
    parser.add_argument('--avoid', dest='avoid_layout', default=None, metavar='LAYOUT',
                        help='Layout tag to switch away from (portal transport)')
    parser.add_argument('--reset-method', choices=RESET_METHODS, default=None,
                        help='How to reset the desktop layout')
    parser.add_argument('--focus-backend', choices=FOCUS_BACKENDS, default=None,
                        help='How to detect that the editor has focus')
    parser.add_argument('--version', action='version', version='%(prog)s ' + __version__)
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Config values given on the command line."""
    keys = ('transport', 'avoid_layout', 'reset_method', 'focus_backend')
    return {k: getattr(args, k) for k in keys if getattr(args, k) is not None}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for imsync"""
    args = parse_args(argv)
    log = setup_logging(debug=args.debug, log_file=args.logfile, trace=args.trace)

    log.info("=" * 60)
    log.info("imsync started (version %s, pid %d)", __version__, os.getpid())

    # Import after args parsing to avoid import-time side effects
    from imsync.app import ImSyncApp
    from imsync.utils.desktop import get_environment_info

    try:
        config = load_config(args.config, args.debug)
        config.update(overrides_from_args(args))
        validate_config(config)
    except ValueError as e:
        log.error("Invalid configuration: %s", e)
        return 1

    log.info("Environment: %s", get_environment_info())

    exit_reason = None
    try:
        app = ImSyncApp(debug=args.debug, config_path=args.config,
                        overrides=overrides_from_args(args))
        code = app.run()
        exit_reason = "Normal completion" if code == 0 else "Transport unavailable"
        return code

    except KeyboardInterrupt:
        exit_reason = "Keyboard interrupt (Ctrl+C)"
        return 0

    except ImportError as e:
        exit_reason = f"Missing dependency: {e}"
        log.error("Missing dependency: %s (install dbus-python and PyGObject)", e)
        return 1

    except Exception as e:
        exit_reason = f"Unhandled exception: {type(e).__name__}: {e}"
        log.error("Unhandled error: %s", e)
        log.debug(traceback.format_exc())
        return 1

    finally:
        if exit_reason:
            log.info("Exit reason: %s", exit_reason)
        log.info("imsync shutdown")
        log.info("=" * 60)


if __name__ == '__main__':
    sys.exit(main())
