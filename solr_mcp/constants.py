"""
Project-wide constants

1. Query tokens and compiler defaults (match-all, neighbor count, facet limits)
2. Hybrid search candidate pool sizing
3. Field role classification limits
4. DEFAULTS: default values for tool arguments
5. ERROR: standard error message templates

Note: Solr parameter names (q, fq, df, ...) are written as string literals where
they are used; they are part of Solr's wire format and never change.
"""

# Query tokens
MATCH_ALL = "*:*"
OPEN_BOUND = "*"

# Compiler defaults
DEFAULT_K = 5
FACET_LIMIT = 20
FACET_MINCOUNT = 1
EDISMAX = "edismax"

# Candidate pool for the vector phase of hybrid search is rows * multiplier
HYBRID_CANDIDATE_MULTIPLIER = 10

# Field role classification
TOP_TEXT_FIELDS = 3
SUMMARY_FIELDS_PER_KIND = 30

# Schema cache
DEFAULT_SCHEMA_TTL_SECONDS = 600.0
FIELD_METADATA_FILE = "field_metadata.json"

# Default values for tool arguments
DEFAULTS = {
    "rows": 10,
    "start": 0,
    "locale": "en",
}

# Error message templates
ERROR = {
    "collection_required": "collection is required. set input.collection or SOLR_MCP_DEFAULT_COLLECTION",
    "query_required": "query is required",
    "unknown_tool": "Unknown tool: {}",
    "unexpected": "An unexpected error occurred: {}",
    "collection_not_found": "collection {} not found",
}
