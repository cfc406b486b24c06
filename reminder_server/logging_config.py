"""Logging configuration for the Reminder Scheduler."""

import logging
import sys

logger = logging.getLogger("reminder_server")


def configure_logging(level: int = logging.INFO) -> None:
    """Set up logging configuration."""

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear all existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '[%(asctime)s][%(levelname)s] %(message)s'
    )
    console_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)

    # Package loggers propagate to root
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = True

    for logger_name in ['reminder_server.services.reminders.engine', 'reminder_server.services.reminders.dispatcher']:
        specific_logger = logging.getLogger(logger_name)
        specific_logger.setLevel(level)
        specific_logger.propagate = True


def get_logger(name: str = "reminder_server") -> logging.Logger:
    """Get logger instance."""
    return logging.getLogger(name)
