"""
Models for execution logs.

This module defines the append-only audit record written for every
execution attempt.
"""

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String, Text

from sqlgate.db.base import Base
from sqlgate.utils.time_utils import utc_now


class ExecutionLog(Base):
    """
    ExecutionLog model for storing one execution attempt.

    Script and origin fields are copied at execution time rather than joined,
    so history stays correct if the ledger entry changes later.
    """

    __tablename__ = "sql_execution_log"

    id = Column(Integer, primary_key=True, index=True)
    script_name = Column(String(255), nullable=False)
    script_content = Column(Text, nullable=False)
    executed_by = Column(String(255), nullable=False)
    executed_at = Column(DateTime, default=utc_now)
    target_database = Column(String(50), nullable=False)
    status = Column(String(50), nullable=False)
    error_kind = Column(String(50))
    rows_affected = Column(Integer)
    error_message = Column(Text)
    execution_time_ms = Column(Integer)
    origin_url = Column(String(500))
    approvers = Column(JSON)
    result_data = Column(JSON)

    __table_args__ = (
        Index("idx_execution_log_executed_at", "executed_at"),
        Index("idx_execution_log_script_name", "script_name"),
        Index("idx_execution_log_status", "status"),
    )
