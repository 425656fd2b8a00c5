"""Credential management and security audit operations."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations.registry import Arguments, Operation

AuditCategory = Literal["credentials", "database", "nodes", "filesystem", "instance"]


class CreateCredential(Arguments):
    name: str = Field(description="Name for the credential")
    type: str = Field(description="Credential type (e.g., 'httpBasicAuth', 'httpHeaderAuth', 'oAuth2Api', etc.)")
    data: dict[str, Any] = Field(
        description="Credential data object with required fields for the credential type",
    )


class CredentialSchema(Arguments):
    credentialType: str = Field(
        description=(
            "Credential type name (e.g., 'httpBasicAuth', 'httpHeaderAuth', 'oAuth2Api', "
            "'githubApi', 'slackApi', etc.)"
        ),
    )


class CredentialId(Arguments):
    id: str = Field(description="Credential ID to delete")


class AuditOptions(BaseModel):
    daysAbandonedWorkflow: int | None = Field(
        default=None, description="Number of days to consider a workflow abandoned"
    )
    categories: list[AuditCategory] | None = Field(default=None, description="Audit categories to include")


class GenerateAudit(Arguments):
    additionalOptions: AuditOptions | None = Field(
        default=None, description="Additional audit configuration options"
    )


async def create_credential(client: N8nClient, args: CreateCredential) -> dict[str, Any]:
    created = await client.post("/credentials", {"name": args.name, "type": args.type, "data": args.data})
    # the API echoes the stored credential; never send its data back to the caller
    return {
        "success": True,
        "message": f"Credential '{args.name}' created successfully",
        "credential": {
            "id": created.get("id"),
            "name": created.get("name"),
            "type": created.get("type"),
            "createdAt": created.get("createdAt"),
        },
    }


async def get_credential_schema(client: N8nClient, args: CredentialSchema) -> dict[str, Any]:
    schema = await client.get(f"/credentials/schema/{args.credentialType}")
    return {
        "success": True,
        "credentialType": args.credentialType,
        "schema": schema,
        "message": f"Schema for credential type '{args.credentialType}' retrieved successfully",
    }


async def delete_credential(client: N8nClient, args: CredentialId) -> dict[str, Any]:
    deleted = await client.delete(f"/credentials/{args.id}")
    return {
        "success": True,
        "message": f"Credential {args.id} deleted successfully",
        "deletedCredential": deleted,
    }


async def generate_audit(client: N8nClient, args: GenerateAudit) -> dict[str, Any]:
    payload = args.additionalOptions.model_dump(exclude_none=True) if args.additionalOptions else {}
    audit = await client.post("/audit", payload)
    return {"success": True, "message": "Security audit generated successfully", "audit": audit}


OPERATIONS: list[Operation[Any]] = [
    Operation(
        "create_credential",
        "Create a new credential for workflow authentication. "
        "Use get_credential_schema first to understand required fields for the credential type.",
        CreateCredential,
        create_credential,
    ),
    Operation(
        "get_credential_schema",
        "Get the schema for a specific credential type to understand what fields are required "
        "when creating credentials.",
        CredentialSchema,
        get_credential_schema,
    ),
    Operation(
        "delete_credential",
        "Delete a credential by ID. This will remove the credential and make it unavailable for workflows. "
        "Use with caution as this action cannot be undone.",
        CredentialId,
        delete_credential,
    ),
    Operation(
        "generate_audit",
        "Generate a comprehensive security audit report for the n8n instance",
        GenerateAudit,
        generate_audit,
    ),
]
