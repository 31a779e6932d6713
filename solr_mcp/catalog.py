"""Field catalog discovery through the Solr schema API, guarded by the schema cache."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger
from pydantic import ValidationError

from .constants import FIELD_METADATA_FILE, SUMMARY_FIELDS_PER_KIND
from .errors import UpstreamDecodeError, UpstreamError
from .models import FieldCatalog, FieldMetadata, GuessedFields

if TYPE_CHECKING:
    from .cache import SchemaCache
    from .solr import SolrClient

__all__ = ["CatalogService", "summarize_schema"]


class CatalogService:
    """Fetches per-collection field catalogs and keeps them in a SchemaCache.

    Two concurrent misses on the same collection may both fetch; the later write
    wins. Misses on different collections never wait on each other.
    """

    def __init__(
        self,
        solr: SolrClient,
        cache: SchemaCache,
        metadata_file: str = FIELD_METADATA_FILE,
    ) -> None:
        self.solr = solr
        self.cache = cache
        self.metadata_file = metadata_file

    async def get_field_catalog(self, collection: str) -> FieldCatalog:
        """Return the collection's catalog from cache, or fetch and cache it."""
        cached = self.cache.get(collection)
        if cached is not None:
            logger.debug(f"Schema cache hit for '{collection}'")
            return cached

        logger.info(f"Fetching schema for collection '{collection}'")
        unique_key = await self.solr.get_unique_key(collection)
        raw_fields = await self.solr.get_fields(collection)
        metadata = await self._fetch_metadata(collection)

        try:
            catalog = FieldCatalog(
                unique_key=unique_key, fields=raw_fields, metadata=metadata
            )
        except ValidationError as e:
            raise UpstreamDecodeError("schema.fields", f"invalid field list: {e}") from e

        self.cache.set(collection, catalog)
        logger.info(
            f"Cached schema for '{collection}': {len(catalog.fields)} fields, "
            f"uniqueKey={catalog.unique_key or '<none>'}"
        )
        return catalog

    async def _fetch_metadata(self, collection: str) -> dict[str, FieldMetadata] | None:
        """Optional per-field descriptions. Failure leaves metadata absent."""
        try:
            raw = await self.solr.get_field_metadata(collection, self.metadata_file)
            return {
                name: FieldMetadata.model_validate(value)
                for name, value in raw.items()
                if isinstance(value, dict)
            }
        except (UpstreamError, ValidationError) as e:
            logger.warning(f"Failed to get field metadata for '{collection}': {e}")
            return None


def summarize_schema(catalog: FieldCatalog, guessed: GuessedFields) -> str:
    """Render the catalog as the plain-text schema summary sent to the planner."""
    lines = [f"uniqueKey={catalog.unique_key}"]

    for tag, names in (
        ("text_fields", catalog.text_fields),
        ("number_fields", catalog.number_fields),
        ("date_fields", catalog.date_fields),
        ("bool_fields", catalog.bool_fields),
    ):
        if not names:
            continue
        described = []
        for name in names[:SUMMARY_FIELDS_PER_KIND]:
            description = catalog.description_of(name)
            described.append(f"{name}({description})" if description else name)
        lines.append(f"{tag}: {', '.join(described)}")

    for label, value in (
        ("price", guessed.price),
        ("date", guessed.date),
        ("brand", guessed.brand),
        ("category", guessed.category),
        ("inStock", guessed.in_stock),
        ("defaultDF", guessed.default_df),
    ):
        if value:
            lines.append(f"guess.{label}={value}")

    return "\n".join(lines) + "\n"
