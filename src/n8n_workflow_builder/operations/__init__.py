"""The n8n operations exposed as MCP tools."""

from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations import credentials, executions, tags, workflows
from n8n_workflow_builder.operations.registry import Arguments, NoArguments, Operation, OperationRegistry
from n8n_workflow_builder.operations.results import error_result, run_operation, success_result

ALL_OPERATIONS: list[Operation] = [
    *workflows.OPERATIONS,
    *executions.OPERATIONS,
    *tags.OPERATIONS,
    *credentials.OPERATIONS,
]


def build_registry(client: N8nClient) -> OperationRegistry:
    """Build the registry holding every n8n operation, bound to ``client``."""
    return OperationRegistry(client, ALL_OPERATIONS)


__all__ = [
    "ALL_OPERATIONS",
    "Arguments",
    "NoArguments",
    "Operation",
    "OperationRegistry",
    "build_registry",
    "error_result",
    "run_operation",
    "success_result",
]
