"""
Pydantic schemas for execution-related operations.

This module defines the transient statement analysis, the structured
result of an execution attempt, and the audit log snapshot.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from sqlgate.models.enums import ExecutionErrorKind, ExecutionStatus, TargetDatabase


class StatementAnalysis(BaseModel):
    """Classification of a raw SQL script. Derived, never persisted."""

    model_config = ConfigDict(frozen=True)

    statement_count: int
    is_already_wrapped: bool
    has_returning_clause: bool
    is_select_only: bool

    @computed_field
    @property
    def should_capture_rows(self) -> bool:
        return self.is_select_only or self.has_returning_clause


class ExecutionResult(BaseModel):
    """
    Outcome of one execution attempt.

    Every failure mode is encoded here; producing an ExecutionResult never raises.
    """
    success: bool
    rows_affected: Optional[int] = None
    result_rows: Optional[List[Dict[str, Any]]] = None
    result_truncated: bool = False
    error: Optional[str] = None
    error_kind: Optional[ExecutionErrorKind] = None
    duration_ms: int = 0


class ExecuteScriptRequest(BaseModel):
    """Request body for executing a ledger entry."""
    target_database: TargetDatabase = Field(TargetDatabase.STAGING, description="Database to execute against")


class ScriptExecutionResponse(BaseModel):
    """Result of executeScript as seen by the caller."""
    success: bool
    message: Optional[str] = Field(None, description="Human readable success message")
    error: Optional[str] = Field(None, description="Human readable failure message")
    error_kind: Optional[ExecutionErrorKind] = None
    rows_affected: Optional[int] = None
    result_rows: Optional[List[Dict[str, Any]]] = None
    result_truncated: bool = False
    duration_ms: int = 0
    audit_recorded: bool = Field(False, description="Whether the execution log entry was written")


class ExecutionLogCreate(BaseModel):
    """Snapshot written to the execution log for one attempt."""
    script_name: str
    script_content: str
    executed_by: str
    target_database: TargetDatabase
    status: ExecutionStatus
    error_kind: Optional[ExecutionErrorKind] = None
    rows_affected: Optional[int] = None
    error_message: Optional[str] = None
    execution_time_ms: Optional[int] = None
    origin_url: Optional[str] = None
    approvers: List[str] = Field(default_factory=list)
    result_data: Optional[List[Dict[str, Any]]] = None


class ExecutionLogItem(BaseModel):
    """Schema for an execution log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    script_name: str
    script_content: str
    executed_by: str
    executed_at: datetime
    target_database: str
    status: str
    error_kind: Optional[str] = None
    rows_affected: Optional[int] = None
    error_message: Optional[str] = None
    execution_time_ms: Optional[int] = None
    origin_url: Optional[str] = None
    approvers: Optional[List[str]] = None
    result_data: Optional[List[Dict[str, Any]]] = None


class ExecutionHistoryList(BaseModel):
    """Schema for a list of execution log entries."""
    executions: List[ExecutionLogItem]
    script_name: Optional[str] = Field(None, description="Script the history was filtered to, if any")
    limit: int = Field(description="Maximum number of items returned")
