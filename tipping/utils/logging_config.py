"""
Logging configuration for the tipping application

Console output plus three rotating files when LOG_TO_FILE is set:
tipping.log (everything), errors.log (ERROR and above) and paper_bets.log
(the paper bet synthesizer only, whose skips never reach the caller).
"""

import logging
import logging.handlers
import os
from logging import Filter

from flask import g, has_app_context, has_request_context, request

PAPER_BET_LOGGER = "tipping.services.paper_bets"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
BASE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class RequestContextFilter(Filter):
    """Add the request and the acting participant to log records"""

    def filter(self, record):
        if has_request_context():
            record.method = request.method
            record.path = request.path
            record.remote_addr = request.remote_addr
        else:
            record.method = record.path = record.remote_addr = "-"

        # Only a participant flask-login already resolved; never load one here
        participant = g.get("_login_user") if has_app_context() else None
        record.participant = getattr(participant, "id", None) or "-"
        return True


class ColoredFormatter(logging.Formatter):
    """Colored level names for console output in debug mode"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # Other handlers share the record, so colour a copy
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_handler(log_dir, filename, level, fmt, max_mb, backups):
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, filename),
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(app):
    """
    Setup logging for the Flask application

    Args:
        app: Flask application instance
    """
    log_level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    paper_bet_logger = logging.getLogger(PAPER_BET_LOGGER)
    for handler in paper_bet_logger.handlers[:]:
        paper_bet_logger.removeHandler(handler)

    if app.config.get("LOG_TO_CONSOLE", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        if app.debug:
            console_handler.setFormatter(
                ColoredFormatter(
                    BASE_FORMAT + " [%(filename)s:%(lineno)d]", datefmt="%H:%M:%S"
                )
            )
        else:
            console_handler.setFormatter(logging.Formatter(BASE_FORMAT, datefmt=DATE_FORMAT))
        console_handler.addFilter(RequestContextFilter())
        root_logger.addHandler(console_handler)

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(
                log_dir,
                "tipping.log",
                log_level,
                BASE_FORMAT + " [%(method)s %(path)s] [participant=%(participant)s]",
                max_mb=10,
                backups=5,
            )
        )
        root_logger.addHandler(
            _rotating_handler(
                log_dir,
                "errors.log",
                logging.ERROR,
                BASE_FORMAT
                + " [%(pathname)s:%(lineno)d] [%(method)s %(path)s] [%(remote_addr)s]",
                max_mb=5,
                backups=3,
            )
        )
        # Propagates to the root handlers as well
        paper_bet_logger.addHandler(
            _rotating_handler(
                log_dir,
                "paper_bets.log",
                logging.INFO,
                BASE_FORMAT + " [participant=%(participant)s]",
                max_mb=5,
                backups=3,
            )
        )

    # Configure third-party loggers
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("flask_limiter").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    app.logger.info(f"Logging configured - Level: {logging.getLevelName(log_level)}")
