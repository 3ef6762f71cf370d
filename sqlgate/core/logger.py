"""
Centralized logger management.

LoggerManager owns the log directory and hands out one logger per
domain of the application (system, execution, audit, sync, policy).
Each domain logger writes to its own rotating file and still propagates
to the root handlers configured by ``sqlgate.config.logging``.
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Dict, Optional

DOMAINS = ("system", "execution", "audit", "sync", "policy")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggerManager:
    """Process-wide registry of domain loggers."""

    _instance: Optional["LoggerManager"] = None

    @classmethod
    def get_instance(cls, log_dir: Optional[str] = None) -> "LoggerManager":
        """
        Get or create the singleton instance.

        Args:
            log_dir: Optional log directory used if the instance is created now

        Returns:
            LoggerManager: Singleton instance
        """
        if cls._instance is None:
            cls._instance = cls(log_dir)
        return cls._instance

    def __init__(self, log_dir: Optional[str] = None):
        self._requested_dir = log_dir
        self._log_dir: Optional[Path] = None
        self._initialized = False
        self._loggers: Dict[str, logging.Logger] = {
            domain: logging.getLogger(f"sqlgate.{domain}") for domain in DOMAINS
        }

    def initialize(self, log_dir: Optional[str] = None) -> None:
        """
        Create the log directory and attach rotating file handlers.

        Calling this more than once is harmless; handlers are attached only once.

        Args:
            log_dir: Directory for log files. Falls back to the directory given at
                construction, then the LOG_DIR environment variable, then ./logs.
        """
        if self._initialized:
            return

        target = log_dir or self._requested_dir or os.environ.get("LOG_DIR") or "logs"
        self._log_dir = Path(target).resolve()
        self._log_dir.mkdir(parents=True, exist_ok=True)

        formatter = logging.Formatter(LOG_FORMAT)
        for domain, domain_logger in self._loggers.items():
            handler = logging.handlers.RotatingFileHandler(
                self._log_dir / f"{domain}.log",
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
                delay=True,
            )
            handler.setFormatter(formatter)
            domain_logger.addHandler(handler)

        self._initialized = True
        self.system.debug(f"LoggerManager initialized with log directory {self._log_dir}")

    @property
    def log_dir(self) -> Optional[Path]:
        return self._log_dir

    @property
    def system(self) -> logging.Logger:
        return self._loggers["system"]

    @property
    def execution(self) -> logging.Logger:
        return self._loggers["execution"]

    @property
    def audit(self) -> logging.Logger:
        return self._loggers["audit"]

    @property
    def sync(self) -> logging.Logger:
        return self._loggers["sync"]

    @property
    def policy(self) -> logging.Logger:
        return self._loggers["policy"]
