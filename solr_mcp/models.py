# solr_mcp/models.py
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import DEFAULT_K, DEFAULTS, MATCH_ALL

__all__ = [
    "ParamValue",
    "FieldDescriptor",
    "FieldMetadata",
    "FieldCatalog",
    "GuessedFields",
    "SearchMode",
    "RangeFilter",
    "KeywordBlock",
    "VectorBlock",
    "Plan",
    "SmartSearchRequest",
    "SmartSearchResult",
    "classify_field_type",
    "normalize_params",
]

# Tagged parameter value: every backend parameter is one of these shapes.
type ParamValue = str | int | float | bool | list[str] | dict[str, ParamValue]


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _normalize_param_value(value: Any) -> ParamValue:
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_scalar_text(v) for v in value if v is not None]
    if isinstance(value, dict):
        return normalize_params(value)
    return str(value)


def normalize_params(params: dict[str, Any] | None) -> dict[str, ParamValue]:
    """Coerce an untyped parameter map into the tagged ``ParamValue`` shapes."""
    if not params:
        return {}
    return {
        str(key): _normalize_param_value(value)
        for key, value in params.items()
        if value is not None
    }


# --- Field catalog ---


class FieldDescriptor(BaseModel):
    """One field as reported by the Solr schema API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    type: str = ""
    indexed: bool = False
    stored: bool = False
    multi_valued: bool = Field(default=False, alias="multiValued")


class FieldMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    description: str = ""


def classify_field_type(declared_type: str) -> str | None:
    """Map a declared Solr field type to text/numeric/date/boolean, or None."""
    typ = declared_type.lower()
    if "string" in typ or "text" in typ:
        return "text"
    if any(token in typ for token in ("int", "long", "float", "double")):
        return "numeric"
    if "date" in typ:
        return "date"
    if "bool" in typ:
        return "boolean"
    return None


_KIND_TO_ARRAY = {
    "text": "text_fields",
    "numeric": "number_fields",
    "date": "date_fields",
    "boolean": "bool_fields",
}


class FieldCatalog(BaseModel):
    """Per-collection field catalog.

    The four classification arrays are derived from the declared field types every
    time a catalog is built; values passed for them are ignored.
    """

    model_config = ConfigDict(frozen=True)

    unique_key: str
    fields: list[FieldDescriptor] = Field(default_factory=list)
    metadata: dict[str, FieldMetadata] | None = None

    text_fields: list[str] = Field(default_factory=list)
    number_fields: list[str] = Field(default_factory=list)
    date_fields: list[str] = Field(default_factory=list)
    bool_fields: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _classify(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        descriptors = [
            f if isinstance(f, FieldDescriptor) else FieldDescriptor.model_validate(f)
            for f in data.get("fields") or []
        ]
        arrays: dict[str, list[str]] = {name: [] for name in _KIND_TO_ARRAY.values()}
        for descriptor in descriptors:
            kind = classify_field_type(descriptor.type)
            if kind is not None:
                arrays[_KIND_TO_ARRAY[kind]].append(descriptor.name)
        data["fields"] = descriptors
        data.update(arrays)
        return data

    def description_of(self, field_name: str) -> str:
        if not self.metadata:
            return ""
        meta = self.metadata.get(field_name)
        return meta.description if meta else ""


class GuessedFields(BaseModel):
    """Semantic roles inferred from field names. Empty string means no match."""

    model_config = ConfigDict(frozen=True)

    price: str = ""
    date: str = ""
    brand: str = ""
    category: str = ""
    in_stock: str = ""
    default_df: str = ""
    text_top_n: list[str] = Field(default_factory=list)


# --- Plan ---


class SearchMode(str, Enum):
    """Execution paths a plan can select."""

    KEYWORD = "keyword"
    VECTOR = "vector"
    HYBRID = "hybrid"


def _empty_if_none(value: Any) -> Any:
    return [] if value is None else value


class RangeFilter(BaseModel):
    """Inclusive-by-default range on one field. Missing bounds are open-ended."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    field: str
    type: str = "number"
    lower: str | None = Field(default=None, alias="from")
    upper: str | None = Field(default=None, alias="to")
    include_lower: bool = Field(default=True, alias="include_from")
    include_upper: bool = Field(default=True, alias="include_to")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> str:
        return "date" if v and "date" in str(v).lower() else "number"

    @field_validator("lower", "upper", mode="before")
    @classmethod
    def _bound_as_text(cls, v: Any) -> str | None:
        if v is None:
            return None
        return _scalar_text(v)

    @field_validator("include_lower", "include_upper", mode="before")
    @classmethod
    def _default_inclusive(cls, v: Any) -> bool:
        return True if v is None else v


class KeywordBlock(BaseModel):
    """The edismax part of a plan."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    text_query: str = MATCH_ALL
    filters: list[str] = Field(default_factory=list)
    ranges: list[RangeFilter] = Field(default_factory=list)
    sort: str = ""
    facet_fields: list[str] = Field(default_factory=list)
    params: dict[str, Any] = Field(default_factory=dict)
    fields: list[str] = Field(default_factory=list)

    @field_validator("text_query", mode="before")
    @classmethod
    def _default_match_all(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return MATCH_ALL
        return str(v)

    @field_validator("sort", mode="before")
    @classmethod
    def _sort_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("filters", "facet_fields", mode="before")
    @classmethod
    def _string_list(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            v = [v]
        return [str(item) for item in _empty_if_none(v) if item is not None and str(item).strip()]

    @field_validator("fields", mode="before")
    @classmethod
    def _field_list(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            v = v.split(",")
        return [str(item).strip() for item in _empty_if_none(v) if item is not None and str(item).strip()]

    @field_validator("ranges", mode="before")
    @classmethod
    def _ranges(cls, v: Any) -> Any:
        return _empty_if_none(v)

    @field_validator("params", mode="before")
    @classmethod
    def _params(cls, v: Any) -> dict[str, ParamValue]:
        return normalize_params(v)


class VectorBlock(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    field: str = ""
    k: int = DEFAULT_K
    query_text: str = ""

    @field_validator("k", mode="before")
    @classmethod
    def _default_k(cls, v: Any) -> int:
        if v is None:
            return DEFAULT_K
        k = int(v)
        return k if k > 0 else DEFAULT_K

    @field_validator("field", "query_text", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class Plan(BaseModel):
    """Backend-agnostic search plan returned by the planner."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    mode: SearchMode = SearchMode.KEYWORD
    keyword: KeywordBlock = Field(default_factory=KeywordBlock, alias="edismax")
    vector: VectorBlock = Field(default_factory=VectorBlock)
    reasoning: Any = Field(default=None, alias="_reasoning")

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v: Any) -> SearchMode:
        if isinstance(v, SearchMode):
            return v
        try:
            return SearchMode(str(v or "").strip().lower())
        except ValueError:
            return SearchMode.KEYWORD

    @field_validator("keyword", "vector", mode="before")
    @classmethod
    def _block_defaults(cls, v: Any) -> Any:
        return {} if v is None else v


# --- Smart search request / result ---


class SmartSearchRequest(BaseModel):
    """Input of the smart search operation."""

    collection: str
    query: str
    locale: str = DEFAULTS["locale"]
    rows: int = Field(default=DEFAULTS["rows"], ge=0)
    start: int = Field(default=DEFAULTS["start"], ge=0)
    allow_vector: bool = False
    allow_hybrid: bool = False


class SmartSearchResult(BaseModel):
    """Output of the smart search operation."""

    plan: dict[str, Any]
    select_params: dict[str, Any] | None = None
    json_request: dict[str, Any] | None = None
    response: Any = None
    guessed: GuessedFields
    execution_notes: str
    candidate_count: int | None = None
