"""solr-mcp MCP Server"""

from __future__ import annotations

import argparse
import contextlib
import json
import sys
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import anyio
import httpx
import mcp.server.stdio
import mcp.types as types
from loguru import logger
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions, ServerCapabilities

from .cache import SchemaCache
from .catalog import CatalogService
from .config import SolrMcpConfig, TransportType
from .constants import DEFAULTS, ERROR, MATCH_ALL
from .errors import InputValidationError, SolrMcpError
from .models import SmartSearchRequest, normalize_params
from .planner import Embedder, PlanAcquirer
from .roles import guess_fields
from .search import SmartSearchHandler
from .solr import SolrClient
from .tool_schemas import (
    ToolSchemas,
    ToolValidator,
    create_tool_schemas,
    create_tool_validators,
    load_tool_definitions,
    return_tool_error,
)

__all__ = ["ServerState", "build_state", "build_server", "dispatch_tool", "main"]


@dataclass
class ServerState:
    """Long-lived collaborators shared by every tool call."""

    config: SolrMcpConfig
    http_client: httpx.AsyncClient
    solr: SolrClient
    catalogs: CatalogService
    search_handler: SmartSearchHandler

    async def aclose(self) -> None:
        await self.http_client.aclose()


def configure_logging(level: str) -> None:
    """Send loguru output to stderr only; stdout carries the stdio transport."""
    logger.remove()
    logger.add(sys.stderr, level=level)


def build_state(
    config: SolrMcpConfig, http_client: httpx.AsyncClient | None = None
) -> ServerState:
    """Wire the Solr client, schema cache, planner and search handler together."""
    client = http_client or httpx.AsyncClient(timeout=config.http_timeout)
    solr = SolrClient(config, client)
    catalogs = CatalogService(
        solr, SchemaCache(config.schema_cache_ttl), config.field_metadata_file
    )
    search_handler = SmartSearchHandler(
        config,
        solr,
        catalogs,
        PlanAcquirer(config, client),
        Embedder(config, client),
    )
    return ServerState(config, client, solr, catalogs, search_handler)


def resolve_collection(arguments: dict, config: SolrMcpConfig) -> str:
    """Use the argument when given, otherwise the configured default collection."""
    collection = (arguments.get("collection") or "").strip()
    if not collection:
        collection = config.default_collection.strip()
    if not collection:
        raise InputValidationError(ERROR["collection_required"])
    return collection


# --- Tool handlers ---


async def handle_query_tool(arguments: dict, state: ServerState) -> dict:
    """Passthrough /select query."""
    collection = resolve_collection(arguments, state.config)
    params: dict[str, Any] = {"q": arguments.get("query") or MATCH_ALL}
    if arguments.get("fl"):
        params["fl"] = ",".join(arguments["fl"])
    if arguments.get("fq"):
        params["fq"] = list(arguments["fq"])
    if arguments.get("sort"):
        params["sort"] = arguments["sort"]
    if arguments.get("start") is not None:
        params["start"] = arguments["start"]
    if arguments.get("rows") is not None:
        params["rows"] = arguments["rows"]
    params.update(normalize_params(arguments.get("params")))
    if arguments.get("echoParams"):
        params["echoParams"] = "all"

    logger.debug(f"Executing Solr query on '{collection}': {params}")
    return await state.solr.select(collection, params)


async def handle_ping_tool(arguments: dict, state: ServerState) -> dict:
    """Cluster-wide live node status."""
    data = await state.solr.cluster_status()
    header = data.get("responseHeader") or {}
    live_nodes = (data.get("cluster") or {}).get("live_nodes") or []
    return {
        "status": header.get("status"),
        "qtime": header.get("QTime"),
        "live_nodes": live_nodes,
        "num_nodes": len(live_nodes),
    }


async def handle_collection_health_tool(arguments: dict, state: ServerState) -> dict:
    collection = resolve_collection(arguments, state.config)
    data = await state.solr.cluster_status(collection)
    header = data.get("responseHeader") or {}
    collections = (data.get("cluster") or {}).get("collections") or {}
    status = collections.get(collection)
    if status is None:
        raise InputValidationError(ERROR["collection_not_found"].format(collection))
    return {
        "status": header.get("status"),
        "qtime": header.get("QTime"),
        "health": status.get("health"),
        "shards": status.get("shards"),
        "configName": status.get("configName"),
    }


async def handle_schema_tool(arguments: dict, state: ServerState) -> dict:
    """Field catalog plus guessed roles, served through the schema cache."""
    collection = resolve_collection(arguments, state.config)
    catalog = await state.catalogs.get_field_catalog(collection)
    return {
        **catalog.model_dump(mode="json", by_alias=True),
        "guessed": guess_fields(catalog).model_dump(mode="json"),
    }


async def handle_commit_tool(arguments: dict, state: ServerState) -> dict:
    collection = resolve_collection(arguments, state.config)
    return await state.solr.commit(collection)


async def handle_smart_search_tool(arguments: dict, state: ServerState) -> dict:
    """Natural-language search through the plan/compile/execute pipeline."""
    config = state.config
    request = SmartSearchRequest(
        collection=resolve_collection(arguments, config),
        query=arguments.get("query") or "",
        locale=arguments.get("locale") or DEFAULTS["locale"],
        rows=arguments.get("rows", DEFAULTS["rows"]),
        start=arguments.get("start", DEFAULTS["start"]),
        allow_vector=arguments.get("allow_vector", config.allow_vector),
        allow_hybrid=arguments.get("allow_hybrid", config.allow_hybrid),
    )
    result = await state.search_handler.search(request)
    return {k: v for k, v in result.model_dump(mode="json").items() if v is not None}


TOOL_HANDLERS = {
    "solr.query": handle_query_tool,
    "solr.ping": handle_ping_tool,
    "solr.collection.health": handle_collection_health_tool,
    "solr.schema": handle_schema_tool,
    "solr.commit": handle_commit_tool,
    "solr.smart_search": handle_smart_search_tool,
}


async def dispatch_tool(
    name: str,
    arguments: dict | None,
    state: ServerState,
    tool_validators: dict[str, ToolValidator],
) -> list[types.TextContent]:
    """Validate arguments, run the tool and render the result as JSON text."""
    arguments = arguments or {}
    try:
        handler = TOOL_HANDLERS.get(name)
        if handler is None or name not in tool_validators:
            raise ValueError(ERROR["unknown_tool"].format(name))

        try:
            tool_validators[name](arguments)
        except Exception as validation_error:
            error_msg = return_tool_error(str(validation_error))
            raise InputValidationError(
                f"Tool validation failed: {error_msg}\nPlease correct the errors and retry."
            ) from validation_error

        result = await handler(arguments, state)
        return [types.TextContent(type="text", text=json.dumps(result, indent=2, ensure_ascii=False))]

    except (SolrMcpError, ValueError, TypeError) as e:
        logger.warning(f"Tool '{name}' failed: {e}")
        error_result = {"error": str(e), "type": type(e).__name__}
        return [types.TextContent(type="text", text=json.dumps(error_result, indent=2))]
    except Exception as e:
        logger.exception(f"Tool '{name}' raised an unexpected error")
        error_result = {"error": ERROR["unexpected"].format(e), "type": type(e).__name__}
        return [types.TextContent(type="text", text=json.dumps(error_result, indent=2))]


def build_server(
    state: ServerState,
    tool_schemas: ToolSchemas,
    tool_validators: dict[str, ToolValidator],
) -> Server:
    """Register list_tools / call_tool on a low-level MCP server."""
    mcp_server = Server(state.config.server_name)

    @mcp_server.list_tools()
    async def list_tools() -> list[types.Tool]:
        """Return all Solr tools."""
        return [
            types.Tool(
                name=tool_name,
                description=schema["description"],
                inputSchema=schema["inputSchema"],
            )
            for tool_name, schema in tool_schemas.items()
        ]

    @mcp_server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
        """Route tool calls to the matching handler and return JSON responses."""
        return await dispatch_tool(name, arguments, state, tool_validators)

    return mcp_server


def load_tools() -> tuple[ToolSchemas, dict[str, ToolValidator]]:
    """Load tool definitions, create schemas, and compile validators."""
    try:
        tool_schemas = create_tool_schemas(load_tool_definitions())
        tool_validators = create_tool_validators(tool_schemas)
        print(f"[OK] Generated {len(tool_schemas)} tool schemas", file=sys.stderr)
        return tool_schemas, tool_validators
    except Exception as e:
        print(f"[ERROR] Tool definition loading error: {e}", file=sys.stderr)
        sys.exit(1)


def run_stdio(mcp_server: Server, state: ServerState) -> None:
    async def run_server() -> None:
        init_options = InitializationOptions(
            server_name=state.config.server_name,
            server_version=state.config.version,
            capabilities=ServerCapabilities(tools={}),
        )
        print(
            "[READY] solr-mcp server startup complete - ready for connections",
            file=sys.stderr,
        )
        try:
            async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
                await mcp_server.run(read_stream, write_stream, init_options)
        finally:
            await state.aclose()

    anyio.run(run_server)


def run_streamable_http(mcp_server: Server, state: ServerState) -> None:
    import uvicorn
    from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
    from starlette.applications import Starlette
    from starlette.routing import Mount

    session_manager = StreamableHTTPSessionManager(app=mcp_server)

    async def handle_streamable_http(scope, receive, send) -> None:
        await session_manager.handle_request(scope, receive, send)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run():
            print(
                f"[READY] solr-mcp listening on http://{state.config.host}:{state.config.port}/mcp",
                file=sys.stderr,
            )
            try:
                yield
            finally:
                await state.aclose()

    app = Starlette(
        routes=[Mount("/mcp", app=handle_streamable_http)],
        lifespan=lifespan,
    )
    uvicorn.run(app, host=state.config.host, port=state.config.port)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the solr-mcp server."""
    parser = argparse.ArgumentParser(
        description="solr-mcp: MCP tools for Apache Solr with natural-language smart search"
    )
    parser.add_argument(
        "--transport",
        choices=[t.value for t in TransportType],
        default=None,
        help="Transport protocol to use. 'stdio' for standard I/O, 'streamable-http' for HTTP",
    )
    args = parser.parse_args(argv)

    try:
        config = SolrMcpConfig()
        if args.transport:
            config = config.model_copy(update={"transport": TransportType(args.transport)})
        print(f"[OK] Loaded config for Solr at: {config.solr_url}", file=sys.stderr)
    except Exception as e:
        print(f"[ERROR] Configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(config.log_level)
    tool_schemas, tool_validators = load_tools()
    state = build_state(config)
    mcp_server = build_server(state, tool_schemas, tool_validators)

    if config.transport == TransportType.STREAMABLE_HTTP:
        run_streamable_http(mcp_server, state)
    else:
        run_stdio(mcp_server, state)
    return 0


if __name__ == "__main__":
    sys.exit(main())
