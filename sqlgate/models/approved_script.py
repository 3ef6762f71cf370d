from sqlalchemy import Boolean, Column, DateTime, Index, Integer, JSON, String, Text

from sqlgate.db.base import Base
from sqlgate.models.enums import TargetDatabase
from sqlgate.utils.time_utils import utc_now


class ApprovedScript(Base):
    """
    Ledger entry for one approved change script.

    Rows are created only by reconciliation and are never deleted. The four
    execution fields only ever move from false/null to true/set.
    """

    __tablename__ = "approved_scripts"

    id = Column(Integer, primary_key=True, index=True)
    script_name = Column(String(255), unique=True, nullable=False)
    script_content = Column(Text, nullable=False)
    target_database = Column(String(50), nullable=False, default=TargetDatabase.STAGING.value)
    origin_url = Column(String(500))
    approvers = Column(JSON, default=list)
    approved_at = Column(DateTime, default=utc_now)
    staging_executed = Column(Boolean, nullable=False, default=False)
    staging_executed_at = Column(DateTime)
    production_executed = Column(Boolean, nullable=False, default=False)
    production_executed_at = Column(DateTime)
    direct_prod = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_approved_scripts_target", "target_database"),
    )
