"""
Tests for MCP tool routing, collection fallback and error payloads.
"""
import json

import httpx
import mcp.types as types
import pytest

from solr_mcp import server as server_module
from solr_mcp.config import SolrMcpConfig
from solr_mcp.errors import InputValidationError
from solr_mcp.server import build_server, build_state, dispatch_tool, resolve_collection
from solr_mcp.tool_schemas import create_tool_schemas, create_tool_validators, load_tool_definitions

TECHPRODUCTS_FIELDS = [
    {"name": "id", "type": "string"},
    {"name": "price_i", "type": "pint"},
    {"name": "release_dt", "type": "pdate"},
    {"name": "brand_s", "type": "string"},
    {"name": "title_txt", "type": "text_general"},
]

CLUSTER_STATUS = {
    "responseHeader": {"status": 0, "QTime": 5},
    "cluster": {
        "live_nodes": ["node1:8983_solr", "node2:8983_solr"],
        "collections": {
            "techproducts": {"health": "GREEN", "shards": {"shard1": {}}, "configName": "techconf"}
        },
    },
}


class FakeSolrAndLLM:
    """MockTransport handler standing in for Solr and the planner API."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.plan = {"mode": "keyword", "edismax": {"text_query": "gpu"}}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/schema/uniquekey"):
            return httpx.Response(200, json={"uniqueKey": "id"})
        if path.endswith("/schema/fields"):
            return httpx.Response(200, json={"fields": TECHPRODUCTS_FIELDS})
        if path.endswith("/admin/file"):
            return httpx.Response(404, text="no such file")
        if path.endswith("/select"):
            return httpx.Response(200, json={"response": {"numFound": 1, "docs": [{"id": "gpu-1"}]}})
        if path == "/solr/admin/collections":
            return httpx.Response(200, json=CLUSTER_STATUS)
        if path.endswith("/update"):
            return httpx.Response(200, json={"responseHeader": {"status": 0, "QTime": 3}})
        if path.endswith("/chat/completions"):
            return httpx.Response(
                200, json={"choices": [{"message": {"content": json.dumps(self.plan)}}]}
            )
        return httpx.Response(404, text="unexpected path")


@pytest.fixture
def fake():
    return FakeSolrAndLLM()


@pytest.fixture
def state(fake):
    config = SolrMcpConfig(
        solr_url="http://solr.test:8983",
        default_collection="techproducts",
        llm_base_url="http://llm.test/v1",
        llm_api_key="llm-key",
        allow_vector=False,
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return build_state(config, client)


@pytest.fixture(scope="module")
def tool_schemas():
    return create_tool_schemas(load_tool_definitions())


@pytest.fixture(scope="module")
def validators(tool_schemas):
    return create_tool_validators(tool_schemas)


async def call(name, arguments, state, validators) -> dict:
    contents = await dispatch_tool(name, arguments, state, validators)
    assert len(contents) == 1
    assert contents[0].type == "text"
    return json.loads(contents[0].text)


# --- COLLECTION RESOLUTION ---


def test_resolve_collection_fallback():
    config = SolrMcpConfig(default_collection="gettingstarted")
    assert resolve_collection({"collection": "films"}, config) == "films"
    assert resolve_collection({"collection": "  "}, config) == "gettingstarted"
    assert resolve_collection({}, config) == "gettingstarted"

    with pytest.raises(InputValidationError):
        resolve_collection({}, SolrMcpConfig(default_collection=""))


# --- PASSTHROUGH TOOLS ---


@pytest.mark.asyncio
async def test_query_tool(state, validators, fake):
    result = await call(
        "solr.query",
        {"fq": ["inStock:true"], "fl": ["id", "title_txt"], "rows": 3, "echoParams": True},
        state,
        validators,
    )
    assert result["response"]["docs"] == [{"id": "gpu-1"}]

    request = fake.requests[-1]
    assert request.url.path == "/solr/techproducts/select"
    assert request.method == "POST"
    params = httpx.QueryParams(request.content.decode())
    assert params["q"] == "*:*"
    assert params["fl"] == "id,title_txt"
    assert params.get_list("fq") == ["inStock:true"]
    assert params["rows"] == "3"
    assert params["echoParams"] == "all"
    assert params["wt"] == "json"


@pytest.mark.asyncio
async def test_ping_tool(state, validators):
    result = await call("solr.ping", {}, state, validators)
    assert result == {
        "status": 0,
        "qtime": 5,
        "live_nodes": ["node1:8983_solr", "node2:8983_solr"],
        "num_nodes": 2,
    }


@pytest.mark.asyncio
async def test_collection_health_tool(state, validators):
    result = await call("solr.collection.health", {"collection": "techproducts"}, state, validators)
    assert result["health"] == "GREEN"
    assert result["configName"] == "techconf"
    assert result["qtime"] == 5


@pytest.mark.asyncio
async def test_collection_health_unknown_collection(state, validators):
    result = await call("solr.collection.health", {"collection": "films"}, state, validators)
    assert result["error"] == "collection films not found"
    assert result["type"] == "InputValidationError"


@pytest.mark.asyncio
async def test_schema_tool(state, validators):
    result = await call("solr.schema", {}, state, validators)
    assert result["unique_key"] == "id"
    assert result["number_fields"] == ["price_i"]
    assert result["metadata"] is None
    assert result["guessed"]["price"] == "price_i"
    assert result["guessed"]["default_df"] == "title_txt"


@pytest.mark.asyncio
async def test_commit_tool(state, validators, fake):
    result = await call("solr.commit", {"collection": "techproducts"}, state, validators)
    assert result["responseHeader"]["status"] == 0
    assert fake.requests[-1].url.params["commit"] == "true"


# --- SMART SEARCH ---


@pytest.mark.asyncio
async def test_smart_search_tool(state, validators, fake):
    result = await call("solr.smart_search", {"query": "gpu"}, state, validators)

    assert result["plan"] == fake.plan
    assert result["select_params"]["q"] == "gpu"
    assert "fq" not in result["select_params"]
    assert "json_request" not in result
    assert result["guessed"]["brand"] == "brand_s"
    assert result["response"]["response"]["docs"] == [{"id": "gpu-1"}]
    assert result["execution_notes"]


@pytest.mark.asyncio
async def test_smart_search_vector_not_permitted(state, validators, fake):
    fake.plan = {"mode": "vector", "vector": {"field": "vec"}}
    result = await call("solr.smart_search", {"query": "similar to gpu"}, state, validators)
    assert result["type"] == "ModeNotPermittedError"


@pytest.mark.asyncio
async def test_smart_search_upstream_error_names_call(validators, fake):
    config = SolrMcpConfig(
        solr_url="http://solr.test:8983",
        llm_base_url="http://llm.test/v1",
        llm_api_key="llm-key",
    )

    def broken_schema(request):
        if request.url.path.endswith("/schema/fields"):
            return httpx.Response(503, text="unavailable")
        return fake(request)

    state = build_state(config, httpx.AsyncClient(transport=httpx.MockTransport(broken_schema)))
    result = await call("solr.smart_search", {"collection": "techproducts", "query": "gpu"}, state, validators)
    assert result["type"] == "UpstreamError"
    assert result["error"].startswith("schema.fields:")


# --- ERRORS ---


@pytest.mark.asyncio
async def test_unknown_tool(state, validators):
    result = await call("solr.delete_everything", {}, state, validators)
    assert result == {"error": "Unknown tool: solr.delete_everything", "type": "ValueError"}


@pytest.mark.asyncio
async def test_validation_failure(state, validators):
    result = await call("solr.smart_search", {"rows": 5}, state, validators)
    assert result["type"] == "InputValidationError"
    assert result["error"].startswith("Tool validation failed:")


@pytest.mark.asyncio
async def test_unexpected_error(state, validators, monkeypatch):
    async def explode(arguments, state):
        raise RuntimeError("kaboom")

    monkeypatch.setitem(server_module.TOOL_HANDLERS, "solr.ping", explode)
    result = await call("solr.ping", {}, state, validators)
    assert result == {"error": "An unexpected error occurred: kaboom", "type": "RuntimeError"}


def test_build_server(state, tool_schemas, validators):
    server = build_server(state, tool_schemas, validators)
    assert server.name == "solr-mcp"
    assert types.ListToolsRequest in server.request_handlers
    assert types.CallToolRequest in server.request_handlers


@pytest.mark.asyncio
async def test_server_lists_every_tool(state, tool_schemas, validators):
    server = build_server(state, tool_schemas, validators)
    handler = server.request_handlers[types.ListToolsRequest]
    result = await handler(types.ListToolsRequest(method="tools/list"))

    names = sorted(tool.name for tool in result.root.tools)
    assert names == sorted(tool_schemas)
