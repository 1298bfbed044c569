"""Plan models and the bounded-concurrency plan executor."""

from tidyfs.plan.cancel import CancelToken
from tidyfs.plan.executor import PlanExecutor, ProgressCallback
from tidyfs.plan.models import (
    BatchResult,
    OrganizePlan,
    OrganizeStrategy,
    PlannedOperation,
    PlanSummary,
)

__all__ = [
    "BatchResult",
    "CancelToken",
    "OrganizePlan",
    "OrganizeStrategy",
    "PlanExecutor",
    "PlanSummary",
    "PlannedOperation",
    "ProgressCallback",
]
