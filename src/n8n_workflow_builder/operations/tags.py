"""Tag management operations."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations.registry import Arguments, Operation


class ListTags(Arguments):
    limit: int | None = Field(default=None, ge=1, le=250, description="Number of tags to return (max: 250)")
    cursor: str | None = Field(default=None, description="Pagination cursor for next page")


class CreateTag(Arguments):
    name: str = Field(description="Name of the tag to create")


class TagId(Arguments):
    id: str = Field(description="Tag ID")


class UpdateTag(Arguments):
    id: str = Field(description="Tag ID")
    name: str = Field(description="New name for the tag")


class WorkflowTags(Arguments):
    workflowId: str = Field(description="Workflow ID")


class UpdateWorkflowTags(Arguments):
    workflowId: str = Field(description="Workflow ID")
    tagIds: list[str] = Field(description="Array of tag IDs to assign to the workflow")


async def list_tags(client: N8nClient, args: ListTags) -> Any:
    return await client.get("/tags", params=args.model_dump())


async def create_tag(client: N8nClient, args: CreateTag) -> dict[str, Any]:
    tag = await client.post("/tags", {"name": args.name})
    return {"success": True, "message": f"Tag '{args.name}' created successfully", "tag": tag}


async def get_tag(client: N8nClient, args: TagId) -> dict[str, Any]:
    tag = await client.get(f"/tags/{args.id}")
    return {"success": True, "tag": tag, "message": f"Tag {args.id} retrieved successfully"}


async def update_tag(client: N8nClient, args: UpdateTag) -> dict[str, Any]:
    tag = await client.put(f"/tags/{args.id}", {"name": args.name})
    return {"success": True, "message": f"Tag {args.id} updated successfully", "tag": tag}


async def delete_tag(client: N8nClient, args: TagId) -> dict[str, Any]:
    deleted = await client.delete(f"/tags/{args.id}")
    return {"success": True, "message": f"Tag {args.id} deleted successfully", "deletedTag": deleted}


async def get_workflow_tags(client: N8nClient, args: WorkflowTags) -> dict[str, Any]:
    tags = await client.get(f"/workflows/{args.workflowId}/tags")
    return {
        "success": True,
        "workflowId": args.workflowId,
        "tags": tags,
        "message": f"Tags for workflow {args.workflowId} retrieved successfully",
    }


async def update_workflow_tags(client: N8nClient, args: UpdateWorkflowTags) -> dict[str, Any]:
    assigned = await client.put(f"/workflows/{args.workflowId}/tags", {"tagIds": args.tagIds})
    return {
        "success": True,
        "message": f"Tags for workflow {args.workflowId} updated successfully",
        "workflowId": args.workflowId,
        "assignedTags": assigned,
    }


OPERATIONS: list[Operation[Any]] = [
    Operation("list_tags", "List all workflow tags with pagination support", ListTags, list_tags),
    Operation("create_tag", "Create a new workflow tag for organization and categorization", CreateTag, create_tag),
    Operation("get_tag", "Retrieve individual tag details by ID", TagId, get_tag),
    Operation("update_tag", "Modify tag names for better organization", UpdateTag, update_tag),
    Operation("delete_tag", "Remove unused tags from the system", TagId, delete_tag),
    Operation("get_workflow_tags", "Get all tags associated with a specific workflow", WorkflowTags, get_workflow_tags),
    Operation("update_workflow_tags", "Assign or remove tags from workflows", UpdateWorkflowTags, update_workflow_tags),
]
