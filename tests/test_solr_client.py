"""
Tests for the Solr HTTP client using httpx.MockTransport.
"""
import json

import httpx
import pytest

from solr_mcp.config import SolrMcpConfig
from solr_mcp.errors import UpstreamDecodeError, UpstreamError
from solr_mcp.solr import SolrClient


class Recorder:
    """MockTransport handler that answers by URL path and records requests."""

    def __init__(self, routes: dict[str, httpx.Response]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get(request.url.path)
        if response is None:
            return httpx.Response(404, text="not found")
        return response


def make_client(routes, **config) -> tuple[SolrClient, Recorder]:
    recorder = Recorder(routes)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    cfg = SolrMcpConfig(solr_url="http://solr.test:8983/", **config)
    return SolrClient(cfg, http_client), recorder


@pytest.mark.asyncio
async def test_schema_calls():
    client, recorder = make_client(
        {
            "/solr/techproducts/schema/uniquekey": httpx.Response(200, json={"uniqueKey": "id"}),
            "/solr/techproducts/schema/fields": httpx.Response(
                200, json={"fields": [{"name": "id", "type": "string"}]}
            ),
            "/solr/techproducts/admin/file": httpx.Response(
                200, json={"price_i": {"description": "Price"}}
            ),
        }
    )

    assert await client.get_unique_key("techproducts") == "id"
    assert await client.get_fields("techproducts") == [{"name": "id", "type": "string"}]
    assert await client.get_field_metadata("techproducts", "field_metadata.json") == {
        "price_i": {"description": "Price"}
    }

    fields_request = recorder.requests[1]
    assert fields_request.url.params["includeDynamic"] == "true"
    metadata_request = recorder.requests[2]
    assert metadata_request.url.params["file"] == "field_metadata.json"
    await client.close()


def form_params(request: httpx.Request) -> httpx.QueryParams:
    return httpx.QueryParams(request.content.decode())


@pytest.mark.asyncio
async def test_select_encodes_repeated_params():
    client, recorder = make_client(
        {"/solr/techproducts/select": httpx.Response(200, json={"response": {"docs": []}})}
    )
    await client.select("techproducts", {"q": "gpu", "fq": ["a:1", "b:2"], "facet": True, "wt": "xml"})

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert not request.url.query

    params = form_params(request)
    assert params["q"] == "gpu"
    assert params.get_list("fq") == ["a:1", "b:2"]
    assert params["facet"] == "true"
    assert params.get_list("wt") == ["json"]


@pytest.mark.asyncio
async def test_select_with_large_id_filter_keeps_url_short():
    client, recorder = make_client(
        {"/solr/techproducts/select": httpx.Response(200, json={"response": {"docs": []}})}
    )
    ids = " OR ".join(f'"{i:032x}-{i:04d}"' for i in range(500))
    await client.select("techproducts", {"q": "gpu", "fq": [f"id:({ids})"]})

    request = recorder.requests[0]
    assert len(str(request.url)) < 8192
    assert form_params(request)["fq"] == f"id:({ids})"


@pytest.mark.asyncio
async def test_query_json_posts_body():
    client, recorder = make_client(
        {"/solr/techproducts/query": httpx.Response(200, json={"response": {"docs": []}})}
    )
    body = {"knn": [{"field": "vec", "vector": [0.1], "k": 5}], "limit": 10}
    await client.query_json("techproducts", body)

    request = recorder.requests[0]
    assert request.method == "POST"
    assert json.loads(request.content) == body


@pytest.mark.asyncio
async def test_cluster_status_and_commit():
    client, recorder = make_client(
        {
            "/solr/admin/collections": httpx.Response(200, json={"cluster": {"live_nodes": []}}),
            "/solr/techproducts/update": httpx.Response(200, json={"responseHeader": {"status": 0}}),
        }
    )
    await client.cluster_status()
    await client.cluster_status("techproducts")
    await client.commit("techproducts")

    assert recorder.requests[0].url.params["action"] == "CLUSTERSTATUS"
    assert "collection" not in recorder.requests[0].url.params
    assert recorder.requests[1].url.params["collection"] == "techproducts"
    assert recorder.requests[2].url.params["commit"] == "true"


@pytest.mark.asyncio
async def test_basic_auth_is_sent():
    client, recorder = make_client(
        {"/solr/admin/collections": httpx.Response(200, json={})},
        solr_basic_user="solr",
        solr_basic_pass="SolrRocks",
    )
    await client.cluster_status()
    assert recorder.requests[0].headers["Authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_error_status_names_the_call():
    client, _ = make_client(
        {"/solr/techproducts/schema/fields": httpx.Response(500, text="boom")}
    )
    with pytest.raises(UpstreamError) as exc_info:
        await client.get_fields("techproducts")
    assert exc_info.value.call == "schema.fields"
    assert "HTTP status 500" in str(exc_info.value)


@pytest.mark.asyncio
async def test_non_json_body_is_decode_error():
    client, _ = make_client(
        {"/solr/techproducts/select": httpx.Response(200, text="<html/>")}
    )
    with pytest.raises(UpstreamDecodeError) as exc_info:
        await client.select("techproducts", {"q": "*:*"})
    assert exc_info.value.call == "solr.select"


@pytest.mark.asyncio
async def test_transport_error_is_upstream_error():
    def fail(request):
        raise httpx.ConnectError("connection refused", request=request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fail))
    client = SolrClient(SolrMcpConfig(), http_client)
    with pytest.raises(UpstreamError) as exc_info:
        await client.commit("techproducts")
    assert exc_info.value.call == "solr.commit"
