"""
Plan compilers for the two Solr query shapes.

- build_keyword_params: Plan -> flat edismax parameter map for ``/select``
- build_vector_body: Plan + embedding -> JSON Request API body with a kNN clause

Plus the helpers the hybrid strategy composes: restricting returned fields to the
unique key, extracting candidate ids from a response and appending an id filter.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from ..constants import DEFAULT_K, EDISMAX, FACET_LIMIT, FACET_MINCOUNT, MATCH_ALL, OPEN_BOUND
from ..models import GuessedFields, KeywordBlock, ParamValue, Plan, RangeFilter

__all__ = [
    "render_range",
    "build_filter_list",
    "append_filter_query",
    "build_keyword_params",
    "build_vector_body",
    "edismax_subquery",
    "restrict_fields_to_id",
    "extract_ids",
    "id_disjunction",
]


def render_range(r: RangeFilter) -> str:
    """``field:[lower TO upper]`` with ``*`` for a missing or empty bound."""
    lower = r.lower if r.lower else OPEN_BOUND
    upper = r.upper if r.upper else OPEN_BOUND
    open_bracket = "[" if r.include_lower else "{"
    close_bracket = "]" if r.include_upper else "}"
    return f"{r.field}:{open_bracket}{lower} TO {upper}{close_bracket}"


def build_filter_list(block: KeywordBlock) -> list[str]:
    """Plan filters followed by rendered ranges."""
    return [*block.filters, *(render_range(r) for r in block.ranges)]


def append_filter_query(params: dict[str, Any], fq: str) -> None:
    """Add one filter to ``params['fq']`` whatever shape it currently has."""
    current = params.get("fq")
    if current is None:
        params["fq"] = [fq]
    elif isinstance(current, str):
        params["fq"] = [current, fq]
    elif isinstance(current, list):
        params["fq"] = [*current, fq]
    else:
        params["fq"] = [str(current), fq]


def build_keyword_params(
    plan: Plan, guessed: GuessedFields, rows: int, start: int
) -> dict[str, ParamValue]:
    """Compile the plan into ``/select`` parameters.

    Plan-supplied backend parameters override the defaults. ``fq`` is present only
    when there is at least one filter or range.
    """
    block = plan.keyword
    params: dict[str, Any] = {
        "defType": EDISMAX,
        "q": block.text_query or MATCH_ALL,
        "rows": rows,
        "start": start,
        "wt": "json",
    }
    params.update(copy.deepcopy(block.params))

    if "df" not in params and guessed.default_df:
        params["df"] = guessed.default_df

    for fq in build_filter_list(block):
        append_filter_query(params, fq)

    if block.sort:
        params["sort"] = block.sort

    if block.facet_fields:
        params["facet"] = "true"
        params["facet.field"] = list(block.facet_fields)
        params.setdefault("facet.limit", FACET_LIMIT)
        params.setdefault("facet.mincount", FACET_MINCOUNT)

    if block.fields:
        params["fl"] = ",".join(block.fields)

    return params


def _local_value(value: Any) -> str:
    """Space-join list values; other non-string values contribute nothing."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return " ".join(v for v in value if v)
    return ""


def _local_param(name: str, value: str) -> str:
    if any(ch.isspace() for ch in value):
        escaped = value.replace("\\", "\\\\").replace("'", "\\'")
        return f"{name}='{escaped}'"
    return f"{name}={value}"


def edismax_subquery(text: str, qf: str = "", df: str = "") -> str:
    """``{!edismax qf=.. df=..}text`` with only the local params that are set."""
    local = [EDISMAX]
    if qf:
        local.append(_local_param("qf", qf))
    if df:
        local.append(_local_param("df", df))
    return "{!" + " ".join(local) + "}" + text


def build_vector_body(
    plan: Plan,
    guessed: GuessedFields,
    embedding: Sequence[float],
    rows: int,
    start: int,
) -> dict[str, Any]:
    """Compile the plan into a JSON Request API body with a kNN clause."""
    block = plan.keyword
    body: dict[str, Any] = {
        "knn": [
            {
                "field": plan.vector.field,
                "vector": list(embedding),
                "k": plan.vector.k or DEFAULT_K,
            }
        ],
        "limit": rows,
        "offset": start,
    }

    filters = build_filter_list(block)
    if filters:
        body["filter"] = filters

    text = block.text_query.strip()
    if text and text != MATCH_ALL:
        body["query"] = edismax_subquery(
            block.text_query,
            qf=_local_value(block.params.get("qf")),
            df=_local_value(block.params.get("df")) or guessed.default_df,
        )

    if block.fields:
        body["fields"] = list(block.fields)
    if block.sort:
        body["sort"] = block.sort
    if block.facet_fields:
        body["facet"] = {
            f"facet_{name}": {
                "type": "terms",
                "field": name,
                "limit": FACET_LIMIT,
                "mincount": FACET_MINCOUNT,
            }
            for name in block.facet_fields
        }
    if block.params:
        body["params"] = copy.deepcopy(block.params)

    return body


def restrict_fields_to_id(body: dict[str, Any], id_field: str) -> None:
    """Replace an existing ``fields`` list with the id field alone.

    A body without ``fields`` is left untouched.
    """
    if not id_field or "fields" not in body:
        return
    body["fields"] = [id_field]


def extract_ids(response: Any, id_field: str) -> list[str]:
    """Collect the id of every returned document, stringifying numeric ids."""
    ids: list[str] = []
    if not isinstance(response, dict):
        return ids
    inner = response.get("response")
    if not isinstance(inner, dict):
        return ids
    docs = inner.get("docs")
    if not isinstance(docs, list):
        return ids

    for doc in docs:
        if not isinstance(doc, dict) or id_field not in doc:
            continue
        value = doc[id_field]
        if isinstance(value, bool):
            continue
        if isinstance(value, str):
            ids.append(value)
        elif isinstance(value, int):
            ids.append(str(value))
        elif isinstance(value, float):
            ids.append(str(int(value)) if value.is_integer() else repr(value))
    return ids


def _quote_term(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def id_disjunction(id_field: str, ids: Sequence[str]) -> str:
    """``id:("a" OR "b" ...)`` restricting a query to the given ids."""
    return f"{id_field}:({' OR '.join(_quote_term(i) for i in ids)})"
