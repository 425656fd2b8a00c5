"""Immutable catalogue of the operations exposed as MCP tools."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Generic, TypeVar

import mcp.types as types
from pydantic import BaseModel, ConfigDict, ValidationError

from n8n_workflow_builder.n8n import N8nClient
from n8n_workflow_builder.operations.results import error_result, run_operation
from n8n_workflow_builder.utilities.logging import get_logger

logger = get_logger(__name__)

ArgumentsT = TypeVar("ArgumentsT", bound=BaseModel)


class Arguments(BaseModel):
    """Base class for operation argument models."""

    model_config = ConfigDict(extra="ignore")


class NoArguments(Arguments):
    pass


@dataclass(frozen=True)
class Operation(Generic[ArgumentsT]):
    """A named call against the n8n API.

    Attributes:
        name: unique tool name
        description: human-readable description advertised to clients
        arguments: pydantic model validating the tool arguments
        handler: coroutine function receiving the client and the validated arguments
    """

    name: str
    description: str
    arguments: type[ArgumentsT]
    handler: Callable[[N8nClient, ArgumentsT], Awaitable[Any]]

    @property
    def input_schema(self) -> dict[str, Any]:
        schema = self.arguments.model_json_schema()
        schema.pop("title", None)
        return schema

    def to_tool(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


class OperationRegistry:
    """Read-only mapping from operation name to :class:`Operation`.

    The registry is fixed at construction and bound to one n8n client; it is safe
    to share between every session engine.
    """

    def __init__(self, client: N8nClient, operations: Iterable[Operation[Any]]):
        by_name: dict[str, Operation[Any]] = {}
        for operation in operations:
            if operation.name in by_name:
                raise ValueError(f"Duplicate operation name: {operation.name}")
            by_name[operation.name] = operation
        self._client = client
        self._operations = MappingProxyType(by_name)

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[Operation[Any]]:
        return iter(self._operations.values())

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def get(self, name: str) -> Operation[Any] | None:
        return self._operations.get(name)

    def list_tools(self) -> list[types.Tool]:
        return [operation.to_tool() for operation in self._operations.values()]

    async def invoke(self, name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        """Validate arguments and run the named operation.

        Unknown names and invalid arguments yield error-flagged results, never
        exceptions.
        """
        operation = self._operations.get(name)
        if operation is None:
            return error_result(f"Unknown tool: {name}")
        try:
            validated = operation.arguments.model_validate(arguments or {})
        except ValidationError as e:
            logger.debug(f"Invalid arguments for {name}: {e}")
            return error_result(f"Invalid arguments for {name}: {e}")
        return await run_operation(name, operation.handler(self._client, validated))
