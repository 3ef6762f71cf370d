"""
Collection of all database models for easy import.
"""

from sqlgate.db.base import Base

from sqlgate.models.approved_script import ApprovedScript
from sqlgate.models.execution_logs import ExecutionLog

# This ensures all models are registered with SQLAlchemy metadata
__all__ = [
    "Base",
    "ApprovedScript",
    "ExecutionLog",
]
