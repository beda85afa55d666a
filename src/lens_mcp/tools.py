"""Tool registry for the LENS proxy tools.

Each tool is declared once as a ``ToolSpec`` record in ``TOOL_SPECS``.
``build_registry`` turns those records into handlers bound to a
``LensClient``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from mcp.types import INVALID_PARAMS, Tool
from pydantic import BaseModel, ValidationError

from lens_mcp.client import LensClient
from lens_mcp.models import AccountArgs, NoArgs

logger = logging.getLogger(__name__)

ToolHandler = Callable[[BaseModel], Awaitable[Any]]


class ToolError(Exception):
    """Base exception for tool dispatch failures."""

    code = INVALID_PARAMS


class UnknownToolError(ToolError):
    """Dispatch to a tool name that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidParameterError(ToolError):
    """Tool arguments are missing or malformed."""

    def __init__(self, name: str, details: str) -> None:
        super().__init__(f"Invalid arguments for tool {name}: {details}")
        self.name = name
        self.details = details


@dataclass(frozen=True)
class ToolSpec:
    """Declarative description of one LENS proxy tool."""

    name: str
    description: str
    path_template: str
    args_model: type[BaseModel] = NoArgs

    def resource_path(self, args: BaseModel) -> str:
        """Interpolate validated arguments into the resource path.

        Values are percent-encoded so each one stays a single path segment.
        """
        values = {key: quote(str(value), safe="") for key, value in args.model_dump().items()}
        return self.path_template.format(**values)


@dataclass(frozen=True)
class ToolDefinition:
    """A registered tool: metadata plus the coroutine that serves it."""

    name: str
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler

    def input_schema(self) -> dict[str, Any]:
        schema = self.args_model.model_json_schema()
        return {
            "type": "object",
            "properties": schema.get("properties", {}),
            "required": schema.get("required", []),
        }

    def to_mcp_tool(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema(),
        )


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="get-client-list",
        description="Get list of client from LENS",
        path_template="client",
    ),
    ToolSpec(
        name="get-announcements-by-account",
        description="Get announcements for a given account",
        path_template="announcements/{uduns}",
        args_model=AccountArgs,
    ),
    ToolSpec(
        name="get-ey-activities-by-account",
        description="Get EY activities histogram for a given account",
        path_template="eyactivitieshistogram/{uduns}",
        args_model=AccountArgs,
    ),
    ToolSpec(
        name="get-forecast-by-account",
        description="Get forecast for a given account",
        path_template="forecast/{uduns}",
        args_model=AccountArgs,
    ),
    ToolSpec(
        name="get-impact-by-account",
        description="Get impact for a given account",
        path_template="impact/{uduns}",
        args_model=AccountArgs,
    ),
    ToolSpec(
        name="get-meeting-activity-by-account",
        description="Get meeting activity histogram for a given account",
        path_template="meetingactivityhistogram/{uduns}",
        args_model=AccountArgs,
    ),
    ToolSpec(
        name="get-pipeline-details-by-account",
        description="Get pipeline details for a given account",
        path_template="pipelineDetails/{uduns}",
        args_model=AccountArgs,
    ),
    ToolSpec(
        name="get-top-insights-by-account",
        description="Get top insights for a given account",
        path_template="topinsights/{uduns}",
        args_model=AccountArgs,
    ),
)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


@dataclass
class ToolRegistry:
    """In-memory tool registry preserving insertion order."""

    _definitions: dict[str, ToolDefinition] = field(default_factory=dict)

    def register(self, definition: ToolDefinition) -> None:
        """Register a tool definition.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """
        if definition.name in self._definitions:
            raise ValueError(f"Tool already registered: {definition.name}")
        self._definitions[definition.name] = definition

    def get(self, name: str) -> ToolDefinition | None:
        return self._definitions.get(name)

    def names(self) -> tuple[str, ...]:
        return tuple(self._definitions)

    def list_tools(self) -> list[Tool]:
        return [definition.to_mcp_tool() for definition in self._definitions.values()]

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> Any:
        """Validate arguments and run the named tool.

        Args:
            name: Exact tool name.
            arguments: Tool arguments from the caller.

        Returns:
            The raw upstream result.

        Raises:
            UnknownToolError: If no tool is registered under ``name``.
            InvalidParameterError: If the arguments fail validation.
        """
        definition = self._definitions.get(name)
        if definition is None:
            raise UnknownToolError(name)
        try:
            args = definition.args_model.model_validate(arguments or {})
        except ValidationError as e:
            raise InvalidParameterError(name, _format_validation_error(e)) from e
        return await definition.handler(args)


def _make_handler(client: LensClient, spec: ToolSpec) -> ToolHandler:
    async def handler(args: BaseModel) -> Any:
        return await client.fetch_resource(spec.resource_path(args))

    return handler


def build_registry(client: LensClient, specs: tuple[ToolSpec, ...] = TOOL_SPECS) -> ToolRegistry:
    """Create a registry with one proxy tool per spec.

    Args:
        client: The LENS client the handlers fetch through.
        specs: Tool records to register, in listing order.

    Returns:
        Populated tool registry.
    """
    registry = ToolRegistry()
    for spec in specs:
        registry.register(
            ToolDefinition(
                name=spec.name,
                description=spec.description,
                args_model=spec.args_model,
                handler=_make_handler(client, spec),
            )
        )
    logger.debug("Registered %d tools", len(specs))
    return registry
