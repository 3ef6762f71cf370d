"""
Schemas for change-source reconciliation.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from sqlgate.models.enums import TargetDatabase


class ChangeRequest(BaseModel):
    """A change request (pull request) as reported by the change source."""
    id: int
    url: str
    merged_at: Optional[datetime] = None


class ChangedFile(BaseModel):
    path: str
    status: str = "modified"


class ScriptMetadata(BaseModel):
    """Fields parsed from the leading comment block of a script."""
    author: Optional[str] = None
    purpose: Optional[str] = None
    target: Optional[str] = None
    date: Optional[str] = None
    direct_prod: bool = False


class SyncStats(BaseModel):
    """Counters for one reconciliation pass."""
    synced: int = 0
    skipped: int = 0
    errors: int = 0
    skipped_reasons: Dict[str, int] = Field(default_factory=dict)

    def skip(self, reason: str) -> None:
        self.skipped += 1
        self.skipped_reasons[reason] = self.skipped_reasons.get(reason, 0) + 1


class SyncResponse(BaseModel):
    success: bool = True
    message: str = "Sync completed"
    stats: SyncStats


class ProcessedFile(BaseModel):
    path: str
    script_name: str
    outcome: str = Field(..., description="synced, skipped reason, or error")
    target_database: Optional[TargetDatabase] = None
    direct_prod: bool = False


class WebhookResponse(BaseModel):
    message: str
    change_request_id: Optional[int] = None
    approvers: List[str] = Field(default_factory=list)
    processed_files: List[ProcessedFile] = Field(default_factory=list)


class ChangeRequestSyncResult(BaseModel):
    """What happened to one change request during reconciliation."""
    change_request_id: int
    approvers: List[str] = Field(default_factory=list)
    skipped_reason: Optional[str] = None
    processed_files: List[ProcessedFile] = Field(default_factory=list)
