"""
Taxonomy term migration: moves Shopp categories and tags to WooCommerce.
"""

import logging
from typing import Dict, List, Optional

from shopp_migrator.core.catalog_writer import CatalogWriter
from shopp_migrator.core.legacy_store import LegacyStore
from shopp_migrator.schemas.reports import TermMigrationResult

logger = logging.getLogger(__name__)

DEFAULT_TAXONOMIES: Dict[str, str] = {
    "shopp_category": "product_cat",
    "shopp_tag": "product_tag",
}


def migrate_terms(
    writer: CatalogWriter,
    store: LegacyStore,
    mapping: Optional[Dict[str, str]] = None
) -> List[TermMigrationResult]:
    """
    Reassign every term of each legacy taxonomy to its WooCommerce counterpart.

    Terms keep their IDs, names, hierarchy and object relationships; only the
    taxonomy column changes. Cached term hierarchies of both taxonomies are
    dropped afterwards.

    Args:
        writer: Target catalog writer
        store: Legacy store (term counts before the move)
        mapping: {legacy taxonomy: WooCommerce taxonomy} (default: DEFAULT_TAXONOMIES)

    Returns:
        One TermMigrationResult per taxonomy pair, with counts after the move.
    """
    results = []
    for old, new in (mapping or DEFAULT_TAXONOMIES).items():
        count = store.count_terms(old)
        logger.info(f"Migrating {count} terms from {old} to {new}.")

        migrated = writer.reassign_terms(old, new)
        writer.clean_taxonomy_cache(old)
        writer.clean_taxonomy_cache(new)

        results.append(TermMigrationResult(
            old_taxonomy=old,
            new_taxonomy=new,
            migrated=migrated,
            old_count=store.count_terms(old),
            new_count=writer.count_terms(new),
        ))
    return results
