"""solr-mcp - Schema-aware natural-language search for Apache Solr over MCP.

solr-mcp is an MCP server that exposes Solr collections as tools and adds a smart
search tool that plans queries with a language model. It provides:

- Passthrough query, ping, collection health, schema and commit tools
- Field catalog discovery through the Solr schema API with a TTL cache
- Deterministic field role guessing (price, date, brand, ...) from field names
- Keyword (edismax), vector (kNN) and hybrid execution of a single plan

Key Components:
    SolrMcpConfig: Configuration management with environment variables
    SolrClient: Async Solr HTTP client
    CatalogService: Cached field catalog discovery
    SmartSearchHandler: Plan acquisition and strategy-based execution

Example:
    >>> from solr_mcp.config import SolrMcpConfig
    >>> config = SolrMcpConfig()

Architecture:
    Schema API -> FieldCatalog -> Role Guesses -> LLM Plan -> Strategy -> Solr
"""

from __future__ import annotations

from .catalog import CatalogService
from .config import VERSION, SolrMcpConfig
from .search import SmartSearchHandler
from .solr import SolrClient

__version__ = VERSION
__all__ = [
    "SolrMcpConfig",
    "SolrClient",
    "CatalogService",
    "SmartSearchHandler",
]
