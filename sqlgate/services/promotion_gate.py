"""
Promotion state machine for ledger entries.

States are derived from the stored flags rather than stored themselves:

    PENDING ──staging ok──▶ READY_FOR_PRODUCTION ──production ok──▶ COMPLETED
    DIRECT_ELIGIBLE (direct_prod set) ──production ok──▶ COMPLETED

Flags only ever move from false to true.
"""

from typing import Optional

from sqlgate.core.logger import LoggerManager
from sqlgate.core.unit_of_work import UnitOfWork
from sqlgate.models.approved_script import ApprovedScript
from sqlgate.models.enums import PromotionState, TargetDatabase

logger = LoggerManager.get_instance().policy

PRODUCTION_REJECTION_MESSAGE = (
    "Script must be executed successfully in staging first, or have -- DirectProd flag set"
)


class PromotionGate:
    """Authorizes targets for a ledger entry and advances its state."""

    @staticmethod
    def can_execute_on_production(script: ApprovedScript) -> bool:
        return bool(script.staging_executed or script.direct_prod)

    @staticmethod
    def derive_state(script: ApprovedScript) -> PromotionState:
        if script.production_executed:
            return PromotionState.COMPLETED
        if script.staging_executed:
            return PromotionState.READY_FOR_PRODUCTION
        if script.direct_prod:
            return PromotionState.DIRECT_ELIGIBLE
        return PromotionState.PENDING

    def authorize(self, script: ApprovedScript, target: TargetDatabase, principal: str) -> Optional[str]:
        """
        Check whether ``script`` may run on ``target``.

        The script must have been read from the ledger immediately before this
        call; a cached copy could authorize against stale flags.

        Args:
            script: Freshly read ledger entry
            target: Requested target
            principal: Identity asking for the execution, for the policy log

        Returns:
            None if allowed, otherwise the rejection message
        """
        if TargetDatabase(target) != TargetDatabase.PRODUCTION:
            return None
        if self.can_execute_on_production(script):
            return None

        logger.warning(
            f"Rejected production execution of {script.script_name} (id={script.id}) "
            f"requested by {principal}: staging_executed=False, direct_prod=False"
        )
        return PRODUCTION_REJECTION_MESSAGE

    async def advance(self, script_id: int, target: TargetDatabase) -> bool:
        """
        Record a successful execution on ``target``.

        Safe to repeat: an already-set flag is left untouched.

        Returns:
            True if the flag moved, False if it was already set
        """
        async with UnitOfWork() as uow:
            moved = await uow.approved_script_repository.mark_executed(script_id, target)
        if moved:
            logger.info(f"Script {script_id} advanced: {TargetDatabase(target).value} executed")
        return moved

    async def replay_from_log(self) -> int:
        """
        Set execution flags that a success log entry proves but the ledger lacks.

        Covers a crash between writing the execution log and updating the ledger.

        Returns:
            Number of flags set
        """
        replayed = 0
        async with UnitOfWork() as uow:
            for target in TargetDatabase:
                for script in await uow.approved_script_repository.list_unexecuted(target):
                    success = await uow.execution_logs_repository.get_first_success(
                        uow.session, script.script_name, target
                    )
                    if success is None:
                        continue
                    if await uow.approved_script_repository.mark_executed(script.id, target, success.executed_at):
                        replayed += 1
                        logger.warning(
                            f"Replayed missing {target.value} promotion for {script.script_name} "
                            f"from execution log {success.id}"
                        )
        if replayed:
            logger.info(f"Promotion replay set {replayed} flag(s)")
        return replayed
