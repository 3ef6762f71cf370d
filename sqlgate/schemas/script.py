"""
Pydantic schemas for ledger entries.

This module defines schemas used for creating ledger entries during
reconciliation and for returning them from the API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from sqlgate.models.enums import PromotionState, TargetDatabase
from sqlgate.schemas.execution import ExecutionLogItem


class ScriptCreate(BaseModel):
    """Data for a new ledger entry imported from the change source."""
    script_name: str = Field(..., min_length=1, max_length=255, description="Unique script file name")
    script_content: str = Field(..., description="Full SQL text")
    target_database: TargetDatabase = Field(TargetDatabase.STAGING, description="Target classification at approval time")
    origin_url: Optional[str] = Field(None, description="URL of the approving change request")
    approvers: List[str] = Field(default_factory=list, description="Identities that approved the change")
    direct_prod: bool = Field(False, description="Allow production without a prior staging run")


class ScriptResponse(BaseModel):
    """Ledger entry as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    script_name: str
    script_content: str
    target_database: TargetDatabase
    origin_url: Optional[str] = None
    approvers: Optional[List[str]] = None
    approved_at: Optional[datetime] = None
    staging_executed: bool = False
    staging_executed_at: Optional[datetime] = None
    production_executed: bool = False
    production_executed_at: Optional[datetime] = None
    direct_prod: bool = False
    promotion_state: PromotionState = PromotionState.PENDING
    can_execute_on_production: bool = False


class ScriptDetailResponse(BaseModel):
    """A ledger entry together with its execution history, newest first."""
    script: ScriptResponse
    history: List[ExecutionLogItem] = Field(default_factory=list)


class PendingChangeRequest(BaseModel):
    """Open change request touching eligible SQL files."""
    id: int
    title: str = ""
    url: str
    author: str = "unknown"
    created_at: Optional[datetime] = None
    sql_files: List[str] = Field(default_factory=list)
