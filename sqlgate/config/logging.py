"""
Logging configuration for the backend application.
This module sets up structured logging with proper formatting and routing to
appropriate handlers based on the environment.
"""

import logging
import logging.config
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from sqlgate.core.logger import LoggerManager

# Log file naming
current_date = datetime.now().strftime("%Y-%m-%d")
log_filename = f"backend.{current_date}.log"
error_log_filename = f"backend.error.{current_date}.log"

# Log formatting
VERBOSE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def get_logging_config(env: str = "development", level: Optional[str] = None) -> Dict[str, Any]:
    """
    Returns logging configuration based on environment.

    Args:
        env: The environment. One of development, staging, production.
        level: Optional root level overriding the environment default.

    Returns:
        Dict with logging configuration.
    """
    is_dev = env.lower() == "development"
    root_level = (level or ("DEBUG" if is_dev else "INFO")).upper()

    logger_manager = LoggerManager.get_instance()
    logger_manager.initialize(os.environ.get("LOG_DIR"))
    logs_dir = str(logger_manager.log_dir)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {"format": VERBOSE_FORMAT},
            "simple": {"format": SIMPLE_FORMAT},
        },
        "handlers": {
            "console": {
                "level": "DEBUG" if is_dev else "INFO",
                "class": "logging.StreamHandler",
                "formatter": "simple" if is_dev else "verbose",
                "stream": sys.stdout,
            },
            "file": {
                "level": "INFO",
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "verbose",
                "filename": os.path.join(logs_dir, log_filename),
                "maxBytes": 10485760,  # 10 MB
                "backupCount": 5,
                "encoding": "utf-8",
            },
            "error_file": {
                "level": "ERROR",
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "verbose",
                "filename": os.path.join(logs_dir, error_log_filename),
                "maxBytes": 10485760,  # 10 MB
                "backupCount": 5,
                "encoding": "utf-8",
            },
            "sqlalchemy_file": {
                "level": "INFO",
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "verbose",
                "filename": os.path.join(logs_dir, "sqlalchemy.log"),
                "maxBytes": 10485760,  # 10 MB
                "backupCount": 5,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            "": {  # Root logger
                "handlers": ["console", "file", "error_file"],
                "level": root_level,
                "propagate": True,
            },
            "uvicorn": {
                "handlers": ["console", "file", "error_file"],
                "level": "INFO",
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "handlers": ["sqlalchemy_file"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }


def setup_logging(env: str = "development", level: Optional[str] = None) -> None:
    """
    Sets up logging configuration for the application.

    Args:
        env: The environment. One of development, staging, production.
        level: Optional root level, usually settings.LOG_LEVEL.
    """
    config = get_logging_config(env, level)
    logging.config.dictConfig(config)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured for {env} environment")

