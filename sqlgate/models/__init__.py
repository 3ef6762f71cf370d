from sqlgate.models.approved_script import ApprovedScript
from sqlgate.models.execution_logs import ExecutionLog
