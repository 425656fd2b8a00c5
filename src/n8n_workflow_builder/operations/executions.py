"""Execution management operations."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations.registry import Arguments, Operation


class ListExecutions(Arguments):
    includeData: bool | None = Field(default=None, description="Include execution's detailed data")
    status: Literal["error", "success", "waiting"] | None = Field(
        default=None, description="Filter by execution status"
    )
    workflowId: str | None = Field(default=None, description="Filter by specific workflow ID")
    projectId: str | None = Field(default=None, description="Filter by project ID")
    limit: int | None = Field(default=None, ge=1, le=250, description="Number of executions to return (max: 250)")
    cursor: str | None = Field(default=None, description="Pagination cursor for next page")


class GetExecution(Arguments):
    id: str = Field(description="Execution ID")
    includeData: bool | None = Field(default=None, description="Include detailed execution data")


class ExecutionId(Arguments):
    id: str = Field(description="Execution ID to delete")


async def list_executions(client: N8nClient, args: ListExecutions) -> Any:
    return await client.get("/executions", params=args.model_dump())


async def get_execution(client: N8nClient, args: GetExecution) -> Any:
    return await client.get(f"/executions/{args.id}", params={"includeData": args.includeData})


async def delete_execution(client: N8nClient, args: ExecutionId) -> dict[str, Any]:
    deleted = await client.delete(f"/executions/{args.id}")
    return {
        "success": True,
        "message": f"Execution {args.id} deleted successfully",
        "deletedExecution": deleted,
    }


OPERATIONS: list[Operation[Any]] = [
    Operation(
        "list_executions",
        "List workflow executions with filtering and pagination support",
        ListExecutions,
        list_executions,
    ),
    Operation(
        "get_execution",
        "Get detailed information about a specific workflow execution",
        GetExecution,
        get_execution,
    ),
    Operation(
        "delete_execution",
        "Delete a workflow execution record from the n8n instance",
        ExecutionId,
        delete_execution,
    ),
]
