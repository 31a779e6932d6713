"""
Language-model plan acquisition and text embedding

Both collaborators speak the OpenAI-compatible HTTP API:

1. PlanAcquirer: chat completion in JSON mode that turns a natural-language request
   plus a schema summary into a search Plan
2. Embedder: embedding endpoint that turns text into a dense vector for kNN search

Neither retries. Empty or malformed answers are hard errors.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger
from pydantic import ValidationError

from .errors import UpstreamDecodeError, UpstreamError
from .models import Plan

if TYPE_CHECKING:
    from .config import SolrMcpConfig

__all__ = ["PlanAcquirer", "Embedder", "timezone_offset", "build_plan_prompt"]


SYSTEM_PROMPT = """You are a Solr query translator for non-technical users.
Users know NOTHING about Solr, schemas, or query syntax.

YOUR JOB:
1. Interpret vague, ambiguous natural language
2. Map concepts to the available schema fields using fuzzy matching
3. Make reasonable assumptions and document them in _reasoning
4. Produce a plan that works even from terrible inputs

OUTPUT: a single JSON object only (no prose)."""

PLAN_PROMPT = """CONTEXT:
- Current time: {now} (UTC offset: {tz})
- Locale: {locale}
- Permitted modes: {modes}

SCHEMA (uniqueKey, fields by kind with descriptions, guessed roles):
{schema}

USER QUERY:
"{query}"

Build a search plan.

- mode: one of the permitted modes. Use "keyword" unless the request is about
  meaning or similarity and vector search is permitted. "hybrid" runs vector recall
  first and then keyword ranking over the recalled documents.
- edismax.text_query: ranked free-text terms. Use "*:*" when only filters apply.
- edismax.filters: certain constraints as Solr fq strings (field:value, boolean groups).
- edismax.ranges: numeric or date ranges. Omit "from" or "to" for an open bound.
  Dates are ISO-8601 or Solr date math (NOW-1DAY). Set include_from/include_to to
  false only for exclusive bounds.
- edismax.sort: e.g. "price asc" or "{date_hint} desc" for time-focused requests.
- edismax.facet_fields: fields worth counting for the user.
- edismax.params: extra edismax parameters (qf, mm, pf, bq, hl, ...).
- edismax.fields: fields to return.
- vector.field: the dense vector field; vector.k: neighbors to fetch;
  vector.query_text: text to embed when it differs from the user query.
- Only use field names that exist in the schema.

OUTPUT FORMAT:
{{
  "mode": "keyword",
  "edismax": {{
    "text_query": "...",
    "filters": ["..."],
    "ranges": [{{"field": "...", "type": "number|date", "from": "...", "to": "..."}}],
    "sort": "...",
    "facet_fields": ["..."],
    "params": {{"qf": "field1^2 field2", "mm": "75%"}},
    "fields": ["..."]
  }},
  "vector": {{"field": "...", "k": 10, "query_text": "..."}},
  "_reasoning": {{
    "field_mappings": {{}},
    "assumptions": ["..."],
    "confidence": "high|medium|low"
  }}
}}"""


def timezone_offset(now: datetime | None = None) -> str:
    """Local UTC offset as ``Z`` or ``+HH:MM`` / ``-HH:MM``."""
    now = now or datetime.now().astimezone()
    offset = now.utcoffset()
    if not offset:
        return "Z"
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    total = abs(total)
    return f"{sign}{total // 3600:02d}:{(total % 3600) // 60:02d}"


def build_plan_prompt(
    query: str,
    locale: str,
    schema_summary: str,
    allow_vector: bool,
    allow_hybrid: bool,
    now: datetime | None = None,
) -> str:
    now = now or datetime.now().astimezone()
    modes = ["keyword"]
    if allow_vector:
        modes.append("vector")
        if allow_hybrid:
            modes.append("hybrid")
    return PLAN_PROMPT.format(
        now=now.isoformat(timespec="seconds"),
        tz=timezone_offset(now),
        locale=locale,
        modes=", ".join(modes),
        schema=schema_summary.strip(),
        query=query,
        date_hint="<date field>",
    )


async def _post_json(
    client: httpx.AsyncClient, call: str, url: str, body: dict[str, Any], api_key: str
) -> dict[str, Any]:
    """POST a JSON body with bearer auth and decode a JSON object answer."""
    logger.debug(f"POST {url} ({call})")
    try:
        response = await client.post(
            url,
            json=body,
            headers={"Authorization": f"Bearer {api_key}"},
        )
    except httpx.HTTPError as e:
        logger.error(f"{call} request failed: {e}")
        raise UpstreamError(call, f"HTTP request error: {e}") from e

    if not response.is_success:
        logger.error(f"{call} returned HTTP {response.status_code}")
        raise UpstreamError(call, f"HTTP status {response.status_code}: {response.text}")

    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamDecodeError(
            call, f"JSON decode error: {e}. Response: {response.text}"
        ) from e

    # Some gateways wrap the answer in a one-element array
    if isinstance(data, list):
        if not data:
            raise UpstreamError(call, "returned an empty array")
        data = data[0]
    if not isinstance(data, dict):
        raise UpstreamDecodeError(call, f"unexpected body: {data!r}")
    return data


def first_choice_content(data: dict[str, Any]) -> str:
    """Extract ``choices[0].message.content`` or '' when absent."""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


class PlanAcquirer:
    """Asks the language model for a search plan."""

    CALL = "llm.plan"

    def __init__(self, config: SolrMcpConfig, http_client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = http_client

    async def plan(
        self,
        query: str,
        locale: str,
        schema_summary: str,
        allow_vector: bool = False,
        allow_hybrid: bool = False,
    ) -> tuple[Plan, dict[str, Any]]:
        """Return the parsed plan (defaults applied) and the raw plan object."""
        self.config.require_planner()

        user_prompt = build_plan_prompt(
            query, locale, schema_summary, allow_vector, allow_hybrid
        )
        body = {
            "model": self.config.llm_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0.2,
            "response_format": {"type": "json_object"},
            "max_tokens": 800,
        }
        url = f"{self.config.llm_base_url}/chat/completions"
        data = await _post_json(self.client, self.CALL, url, body, self.config.llm_api_key)

        if "error" in data:
            raise UpstreamError(self.CALL, f"API returned an error: {data['error']}")

        content = first_choice_content(data)
        if not content.strip():
            raise UpstreamError(self.CALL, "returned empty content")

        try:
            raw_plan = json.loads(content)
        except json.JSONDecodeError as e:
            raise UpstreamDecodeError(
                self.CALL,
                f"failed to parse response as JSON: {e}\nresponse was: {content}",
            ) from e
        if not isinstance(raw_plan, dict):
            raise UpstreamDecodeError(self.CALL, f"plan is not a JSON object: {content}")

        try:
            plan = Plan.model_validate(raw_plan)
        except ValidationError as e:
            raise UpstreamDecodeError(self.CALL, f"plan does not match the plan model: {e}") from e

        logger.info(
            f"Planner chose mode={plan.mode.value} text_query='{plan.keyword.text_query}' "
            f"filters={len(plan.keyword.filters)} ranges={len(plan.keyword.ranges)}"
        )
        return plan, raw_plan


class Embedder:
    """Turns text into an embedding vector."""

    CALL = "embedding"

    def __init__(self, config: SolrMcpConfig, http_client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = http_client

    async def embed(self, text: str) -> list[float]:
        self.config.require_embedding()

        url = f"{self.config.embedding_base_url}/embeddings"
        body = {"model": self.config.embedding_model, "input": text}
        data = await _post_json(
            self.client, self.CALL, url, body, self.config.embedding_api_key
        )

        items = data.get("data")
        if not isinstance(items, list) or not items:
            raise UpstreamError(self.CALL, "embedding API returned no data")
        first = items[0] if isinstance(items[0], dict) else {}
        raw_vector = first.get("embedding") or []
        vector = [
            float(v)
            for v in raw_vector
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        ]
        if not vector:
            raise UpstreamError(self.CALL, "empty embedding vector")
        logger.debug(f"Embedded {len(text)} chars into {len(vector)} dimensions")
        return vector
