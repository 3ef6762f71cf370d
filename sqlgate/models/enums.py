from enum import Enum


class TargetDatabase(str, Enum):
    """Databases a script may be executed against. The audit store is never one."""
    STAGING = "staging"
    PRODUCTION = "production"


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ExecutionErrorKind(str, Enum):
    CONNECTION = "connection"
    STATEMENT = "statement"
    TIMEOUT = "timeout"
    AUTHORIZATION = "authorization"
    EMPTY_SCRIPT = "empty_script"
    INTERNAL = "internal"


class PromotionState(str, Enum):
    PENDING = "pending"
    READY_FOR_PRODUCTION = "ready_for_production"
    DIRECT_ELIGIBLE = "direct_eligible"
    COMPLETED = "completed"
