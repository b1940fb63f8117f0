from .conditions import (
    ConditionChecker,
    ConditionProbeError,
    HttpConditionProbe,
    PollingConditionChecker,
    StaticConditionChecker,
)
from .config import PaidSignal, WorkflowConfig
from .orchestrator import (
    AgentWorkflow,
    Aborted,
    Executed,
    Expired,
    WorkflowResult,
    WorkflowState,
)

__all__ = [
    "Aborted",
    "AgentWorkflow",
    "ConditionChecker",
    "ConditionProbeError",
    "Executed",
    "Expired",
    "HttpConditionProbe",
    "PaidSignal",
    "PollingConditionChecker",
    "StaticConditionChecker",
    "WorkflowConfig",
    "WorkflowResult",
    "WorkflowState",
]
