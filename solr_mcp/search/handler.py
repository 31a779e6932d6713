"""The smart search pipeline: catalog -> roles -> plan -> strategy dispatch."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from ..catalog import summarize_schema
from ..constants import ERROR
from ..errors import InputValidationError, ModeNotPermittedError
from ..models import Plan, SearchMode, SmartSearchRequest, SmartSearchResult
from ..roles import guess_fields
from .strategies import (
    HybridSearchStrategy,
    KeywordSearchStrategy,
    SearchContext,
    SearchStrategy,
    VectorSearchStrategy,
)

if TYPE_CHECKING:
    from ..catalog import CatalogService
    from ..config import SolrMcpConfig
    from ..planner import Embedder, PlanAcquirer
    from ..solr import SolrClient

__all__ = ["SmartSearchHandler"]


class SmartSearchHandler:
    """Turns a natural-language request into one executed Solr query."""

    def __init__(
        self,
        config: SolrMcpConfig,
        solr: SolrClient,
        catalogs: CatalogService,
        planner: PlanAcquirer,
        embedder: Embedder,
    ) -> None:
        self.config = config
        self.catalogs = catalogs
        self.planner = planner
        self._strategies: dict[SearchMode, SearchStrategy] = {
            SearchMode.KEYWORD: KeywordSearchStrategy(solr),
            SearchMode.VECTOR: VectorSearchStrategy(solr, embedder),
            SearchMode.HYBRID: HybridSearchStrategy(
                solr, embedder, config.hybrid_candidate_multiplier
            ),
        }

    def select_strategy(
        self, plan: Plan, allow_vector: bool, allow_hybrid: bool
    ) -> SearchStrategy:
        """Pick the strategy for the plan's mode, enforcing the caller's permissions."""
        if plan.mode is SearchMode.VECTOR:
            if not allow_vector:
                raise ModeNotPermittedError("vector search is not allowed for this request")
            self.config.require_embedding()
        elif plan.mode is SearchMode.HYBRID:
            if not (allow_vector and allow_hybrid):
                raise ModeNotPermittedError("hybrid search is not allowed for this request")
            self.config.require_embedding()
        return self._strategies[plan.mode]

    async def search(self, request: SmartSearchRequest) -> SmartSearchResult:
        """Executes the full pipeline and returns the plan, request and raw response."""
        collection = request.collection.strip()
        if not collection:
            raise InputValidationError(ERROR["collection_required"])
        if not request.query.strip():
            raise InputValidationError(ERROR["query_required"])
        self.config.require_planner()

        catalog = await self.catalogs.get_field_catalog(collection)
        guessed = guess_fields(catalog)
        summary = summarize_schema(catalog, guessed)

        plan, raw_plan = await self.planner.plan(
            request.query,
            request.locale,
            summary,
            allow_vector=request.allow_vector,
            allow_hybrid=request.allow_hybrid,
        )

        strategy = self.select_strategy(plan, request.allow_vector, request.allow_hybrid)
        logger.info(f"Dispatching to {plan.mode.value} strategy.")

        ctx = SearchContext(
            collection=collection,
            query=request.query,
            catalog=catalog,
            guessed=guessed,
            rows=request.rows,
            start=request.start,
        )
        outcome = await strategy.execute(plan, ctx)

        return SmartSearchResult(
            plan=raw_plan,
            select_params=outcome.select_params,
            json_request=outcome.json_request,
            response=outcome.response,
            guessed=guessed,
            execution_notes=outcome.notes,
            candidate_count=outcome.candidate_count,
        )
