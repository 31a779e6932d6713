"""Schema generation for the MCP tool surface.

Tool definitions live in ``tools.yaml`` next to this module. They are turned into MCP
input schemas and compiled into fastjsonschema validators once at startup.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import fastjsonschema
import yaml
from loguru import logger

type ToolDefinitions = dict[str, Any]
type ToolSchema = dict[str, Any]
type ToolSchemas = dict[str, ToolSchema]
type ToolValidator = Callable[[dict[str, Any]], dict[str, Any]]

__all__ = [
    "load_tool_definitions",
    "create_tool_schemas",
    "create_tool_validators",
    "return_tool_error",
    "ToolSchemas",
    "ToolValidator",
]

DEFAULT_TOOLS_PATH = Path(__file__).parent / "tools.yaml"

# --- Schema Constants ---
KEY_TOOLS = "tools"
KEY_PARAMETERS = "parameters"
KEY_DESCRIPTION = "description"
KEY_REQUIRED = "required"
KEY_INPUT_SCHEMA = "inputSchema"
KEY_NAME = "name"


def load_tool_definitions(path: str | Path | None = None) -> ToolDefinitions:
    """Load the YAML tool definitions."""
    filepath = Path(path) if path else DEFAULT_TOOLS_PATH
    logger.info(f"Loading tool definitions from: {filepath}")

    if not filepath.exists():
        raise FileNotFoundError(f"Tool definitions not found: {filepath}")

    with open(filepath, encoding="utf-8") as f:
        return yaml.safe_load(f)


def create_tool_schemas(definitions: ToolDefinitions) -> ToolSchemas:
    """Create MCP tool schemas from the tool definitions."""
    tool_schemas = {}
    tools = definitions.get(KEY_TOOLS, {})

    logger.info(f"Generating tool schemas for {len(tools)} tools")

    for tool_name, tool_definition in tools.items():
        properties = dict(tool_definition.get(KEY_PARAMETERS) or {})
        required = [
            name for name in tool_definition.get(KEY_REQUIRED, []) if name in properties
        ]
        tool_schemas[tool_name] = {
            KEY_NAME: tool_name,
            KEY_DESCRIPTION: tool_definition.get(KEY_DESCRIPTION, f"Tool: {tool_name}"),
            KEY_INPUT_SCHEMA: {
                "type": "object",
                "properties": properties,
                KEY_REQUIRED: sorted(set(required)),
                "additionalProperties": False,
            },
        }

    return tool_schemas


def create_tool_validators(tool_schemas: ToolSchemas) -> dict[str, ToolValidator]:
    """Compile tool schemas into fast validation functions."""
    return {
        tool_name: fastjsonschema.compile(schema[KEY_INPUT_SCHEMA])
        for tool_name, schema in tool_schemas.items()
    }


def return_tool_error(error_msg: str) -> str:
    """Clean up validation error messages for better AI understanding."""
    if "must not contain" in error_msg:
        return f"Unknown argument: {error_msg.replace('data ', '')}"
    if "undefined" in error_msg or "null" in error_msg:
        return f"Invalid argument value: {error_msg}. Please provide valid values for all arguments."
    return error_msg.replace("data.", "").replace("data ", "")
