"""Exception hierarchy shared by the catalog, planner and search layers."""

from __future__ import annotations

__all__ = [
    "SolrMcpError",
    "ConfigurationError",
    "InputValidationError",
    "ModeNotPermittedError",
    "UpstreamError",
    "UpstreamDecodeError",
]


class SolrMcpError(Exception):
    """Base class for every error raised by solr-mcp."""


class ConfigurationError(SolrMcpError):
    """A required credential or endpoint is not configured."""


class InputValidationError(SolrMcpError, ValueError):
    """Caller input is missing or malformed."""


class ModeNotPermittedError(SolrMcpError, ValueError):
    """The plan asks for a search mode the caller did not allow."""


class UpstreamError(SolrMcpError):
    """An outbound call (Solr, planner or embedder) failed.

    ``call`` identifies the originating call, e.g. ``schema.fields``.
    """

    def __init__(self, call: str, message: str) -> None:
        self.call = call
        self.detail = message
        super().__init__(f"{call}: {message}")


class UpstreamDecodeError(UpstreamError):
    """An upstream call answered with a body that is not the expected JSON."""
