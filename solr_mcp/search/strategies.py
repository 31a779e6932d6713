"""
Implements the Strategy pattern for the three plan execution modes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from ..constants import HYBRID_CANDIDATE_MULTIPLIER
from ..models import FieldCatalog, GuessedFields, Plan
from .compilers import (
    append_filter_query,
    build_keyword_params,
    build_vector_body,
    extract_ids,
    id_disjunction,
    restrict_fields_to_id,
)

if TYPE_CHECKING:
    from ..planner import Embedder
    from ..solr import SolrClient

__all__ = [
    "SearchContext",
    "SearchOutcome",
    "SearchStrategy",
    "KeywordSearchStrategy",
    "VectorSearchStrategy",
    "HybridSearchStrategy",
]


@dataclass(frozen=True)
class SearchContext:
    """Everything a strategy needs besides the plan."""

    collection: str
    query: str
    catalog: FieldCatalog
    guessed: GuessedFields
    rows: int
    start: int


@dataclass
class SearchOutcome:
    response: Any
    notes: str
    select_params: dict[str, Any] | None = None
    json_request: dict[str, Any] | None = None
    candidate_count: int | None = None


class SearchStrategy(ABC):
    """Abstract base class for a plan execution strategy."""

    def __init__(self, solr: SolrClient):
        self.solr = solr

    @abstractmethod
    async def execute(self, plan: Plan, ctx: SearchContext) -> SearchOutcome:
        """Runs the plan against the collection and returns the raw Solr response."""
        pass


class KeywordSearchStrategy(SearchStrategy):
    """Parameter-encoded edismax search on ``/select``."""

    async def execute(self, plan: Plan, ctx: SearchContext) -> SearchOutcome:
        params = build_keyword_params(plan, ctx.guessed, ctx.rows, ctx.start)
        logger.debug(f"Compiled edismax params: {params}")
        response = await self.solr.select(ctx.collection, params)
        return SearchOutcome(
            response=response,
            notes="keyword search via edismax",
            select_params=params,
        )


class VectorSearchStrategy(SearchStrategy):
    """kNN search through the JSON Request API."""

    def __init__(self, solr: SolrClient, embedder: Embedder):
        super().__init__(solr)
        self.embedder = embedder

    async def _embed(self, plan: Plan, ctx: SearchContext) -> list[float]:
        text = plan.vector.query_text.strip() or ctx.query
        return await self.embedder.embed(text)

    async def execute(self, plan: Plan, ctx: SearchContext) -> SearchOutcome:
        embedding = await self._embed(plan, ctx)
        body = build_vector_body(plan, ctx.guessed, embedding, ctx.rows, ctx.start)
        logger.debug(f"Compiled kNN body for field '{plan.vector.field}' with k={plan.vector.k}")
        response = await self.solr.query_json(ctx.collection, body)
        return SearchOutcome(
            response=response,
            notes=f"vector search on field '{plan.vector.field}' (k={plan.vector.k})",
            json_request=body,
        )


class HybridSearchStrategy(VectorSearchStrategy):
    """Vector recall over a widened candidate pool, then keyword ranking within it.

    Phase one asks for ``rows * multiplier`` neighbors and keeps only their ids. Phase
    two runs the keyword compilation restricted to those ids with an ``fq``. When the
    vector phase recalls nothing, phase two runs unrestricted.
    """

    def __init__(
        self,
        solr: SolrClient,
        embedder: Embedder,
        multiplier: int = HYBRID_CANDIDATE_MULTIPLIER,
    ):
        super().__init__(solr, embedder)
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        self.multiplier = multiplier

    async def _candidate_phase(
        self, plan: Plan, ctx: SearchContext
    ) -> tuple[list[str], dict[str, Any]]:
        pool = ctx.rows * self.multiplier
        widened = plan.model_copy(
            update={"vector": plan.vector.model_copy(update={"k": pool})}
        )
        embedding = await self._embed(plan, ctx)
        body = build_vector_body(widened, ctx.guessed, embedding, pool, 0)
        restrict_fields_to_id(body, ctx.catalog.unique_key)

        response = await self.solr.query_json(ctx.collection, body)
        ids = extract_ids(response, ctx.catalog.unique_key)
        logger.info(f"Hybrid vector phase recalled {len(ids)} candidates (pool={pool})")
        return ids, body

    async def _merge_phase(
        self, plan: Plan, ctx: SearchContext, ids: list[str], body: dict[str, Any]
    ) -> SearchOutcome:
        params = build_keyword_params(plan, ctx.guessed, ctx.rows, ctx.start)
        if ids:
            append_filter_query(params, id_disjunction(ctx.catalog.unique_key, ids))
            notes = (
                f"hybrid search: {len(ids)} vector candidates re-ranked by edismax"
            )
        else:
            logger.warning("Hybrid vector phase recalled nothing, running keyword search unrestricted")
            notes = "hybrid search: vector recall was empty, fell back to keyword search"

        response = await self.solr.select(ctx.collection, params)
        return SearchOutcome(
            response=response,
            notes=notes,
            select_params=params,
            json_request=body,
            candidate_count=len(ids),
        )

    async def execute(self, plan: Plan, ctx: SearchContext) -> SearchOutcome:
        ids, body = await self._candidate_phase(plan, ctx)
        return await self._merge_phase(plan, ctx, ids, body)
