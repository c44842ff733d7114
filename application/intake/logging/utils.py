"""
Logging utilities for the candidate intake service (FastAPI)
"""
import logging
import atexit

from intake.logging.config import LoggingConfig
from intake.logging.handlers import get_app_handler, get_audit_handler, flush_all_handlers
from intake.logging.slack_handler import slack_handler


def get_app_logger(name: str = 'intake'):
    logger = logging.getLogger(name)
    if not logger.handlers:
        # handlers come with their context filters attached
        logger.addHandler(get_app_handler(name))
        logger.addHandler(slack_handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def init_audit_logger(method: str = ''):
    logger_name = 'intake.audit.get' if method.upper() == 'GET' else 'intake.audit'
    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.addHandler(get_audit_handler(method.upper()))
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def initialize_logging():
    is_valid, message = LoggingConfig.is_valid_config()
    if not is_valid:
        print(f"Warning: {message}")
    atexit.register(flush_all_handlers)
    print("Logging system initialized (candidate-intake)")
