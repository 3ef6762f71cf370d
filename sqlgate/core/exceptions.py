"""
Exceptions reserved for conditions that callers cannot recover from in-request.

Execution and reconciliation failures are never raised; they are reported in
ExecutionResult and SyncStats instead.
"""


class ConfigurationError(RuntimeError):
    """Raised at startup when the process is misconfigured."""


class ScriptNotFoundError(LookupError):
    """Raised when a ledger entry id does not exist."""

    def __init__(self, script_id: int):
        self.script_id = script_id
        super().__init__(f"Script {script_id} not found")


class ChangeSourceError(RuntimeError):
    """Raised by a change source when the remote answers with an unexpected status."""

    def __init__(self, message: str, status: int = 0):
        self.status = status
        super().__init__(message)
