"""Workflow management operations."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations.registry import Arguments, NoArguments, Operation


class WorkflowDefinition(BaseModel):
    name: str = Field(description="Name of the workflow")
    nodes: list[Any] = Field(description="Array of workflow nodes")
    connections: dict[str, Any] | None = Field(default=None, description="Node connections")
    settings: dict[str, Any] | None = Field(default=None, description="Workflow settings")
    tags: list[Any] | None = Field(default=None, description="Workflow tags")


class WorkflowChanges(BaseModel):
    name: str | None = Field(default=None, description="Name of the workflow")
    nodes: list[Any] | None = Field(default=None, description="Array of workflow nodes")
    connections: dict[str, Any] | None = Field(default=None, description="Node connections")
    settings: dict[str, Any] | None = Field(default=None, description="Workflow settings")
    tags: list[Any] | None = Field(default=None, description="Workflow tags")


class WorkflowId(Arguments):
    id: str = Field(description="Workflow ID")


class CreateWorkflow(Arguments):
    workflow: WorkflowDefinition = Field(description="Workflow configuration")


class UpdateWorkflow(Arguments):
    id: str = Field(description="Workflow ID")
    workflow: WorkflowChanges = Field(description="Updated workflow configuration")


async def list_workflows(client: N8nClient, args: NoArguments) -> Any:
    return await client.get("/workflows")


async def create_workflow(client: N8nClient, args: CreateWorkflow) -> Any:
    return await client.post("/workflows", args.workflow.model_dump(exclude_none=True))


async def get_workflow(client: N8nClient, args: WorkflowId) -> Any:
    return await client.get(f"/workflows/{args.id}")


async def update_workflow(client: N8nClient, args: UpdateWorkflow) -> Any:
    return await client.put(f"/workflows/{args.id}", args.workflow.model_dump(exclude_none=True))


async def delete_workflow(client: N8nClient, args: WorkflowId) -> dict[str, Any]:
    deleted = await client.delete(f"/workflows/{args.id}")
    return {
        "success": True,
        "message": f"Workflow {args.id} deleted successfully",
        "deletedWorkflow": deleted,
    }


async def activate_workflow(client: N8nClient, args: WorkflowId) -> dict[str, Any]:
    workflow = await client.post(f"/workflows/{args.id}/activate")
    return {"success": True, "message": f"Workflow {args.id} activated successfully", "workflow": workflow}


async def deactivate_workflow(client: N8nClient, args: WorkflowId) -> dict[str, Any]:
    workflow = await client.post(f"/workflows/{args.id}/deactivate")
    return {"success": True, "message": f"Workflow {args.id} deactivated successfully", "workflow": workflow}


async def execute_workflow(client: N8nClient, args: WorkflowId) -> dict[str, Any]:
    execution = await client.post(f"/workflows/{args.id}/execute")
    return {"success": True, "message": f"Workflow {args.id} executed successfully", "execution": execution}


async def create_workflow_and_activate(client: N8nClient, args: CreateWorkflow) -> dict[str, Any]:
    created = await client.post("/workflows", args.workflow.model_dump(exclude_none=True))
    workflow = await client.post(f"/workflows/{created['id']}/activate")
    return {"success": True, "message": "Workflow created and activated successfully", "workflow": workflow}


OPERATIONS: list[Operation[Any]] = [
    Operation("list_workflows", "List all workflows from n8n instance", NoArguments, list_workflows),
    Operation("create_workflow", "Create a new workflow in n8n", CreateWorkflow, create_workflow),
    Operation("get_workflow", "Get a workflow by ID", WorkflowId, get_workflow),
    Operation("update_workflow", "Update an existing workflow by ID", UpdateWorkflow, update_workflow),
    Operation("delete_workflow", "Delete a workflow by ID", WorkflowId, delete_workflow),
    Operation("activate_workflow", "Activate a workflow by ID", WorkflowId, activate_workflow),
    Operation("deactivate_workflow", "Deactivate a workflow by ID", WorkflowId, deactivate_workflow),
    Operation("execute_workflow", "Execute a workflow manually", WorkflowId, execute_workflow),
    Operation(
        "create_workflow_and_activate",
        "Create a new workflow and immediately activate it",
        CreateWorkflow,
        create_workflow_and_activate,
    ),
]
