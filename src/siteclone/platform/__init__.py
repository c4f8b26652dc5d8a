"""Hosting platform collaborators."""

from siteclone.platform.base import PlatformClient
from siteclone.platform.terminus import TerminusClient
from siteclone.platform.workflow import (
    CommandWorkflow,
    CompletedWorkflow,
    Workflow,
    WorkflowResult,
)

__all__ = [
    "CommandWorkflow",
    "CompletedWorkflow",
    "PlatformClient",
    "TerminusClient",
    "Workflow",
    "WorkflowResult",
]
