"""
Catalog lookups by slug.

Read-only access to the taxonomy the import resolves against:
applications and categories/subcategories share the categories table
(applications are its top-level rows), elevator types and collections
have their own tables.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class CatalogLookupService:
    """
    Slug -> id lookups against the catalog.

    Never writes. Missing slugs are reported as None / absent keys;
    only backend failures raise.
    """

    CATEGORIES_TABLE = "categories"
    ELEVATOR_TYPES_TABLE = "elevator_types"
    COLLECTIONS_TABLE = "collections"

    def __init__(self, client=None):
        self.db = client or get_supabase_client()

    def find_application_id(self, slug: str) -> Optional[str]:
        """Top-level category (parent_id is null) with this slug."""
        logger.debug("finding_application", slug=slug)

        try:
            result = (
                self.db.table(self.CATEGORIES_TABLE)
                .select("id")
                .eq("slug", slug)
                .is_("parent_id", "null")
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("find_application_failed", slug=slug, error=str(e))
            raise DatabaseError("select", str(e), details={"table": self.CATEGORIES_TABLE})

        return result.data[0]["id"] if result.data else None

    def find_category_id(self, slug: str, parent_id: Optional[str] = None) -> Optional[str]:
        """
        Category with this slug.

        Args:
            slug: Category slug
            parent_id: Restrict to children of this category when given

        Returns:
            Category id or None
        """
        logger.debug("finding_category", slug=slug, parent_id=parent_id)

        try:
            query = (
                self.db.table(self.CATEGORIES_TABLE)
                .select("id")
                .eq("slug", slug)
            )
            if parent_id:
                query = query.eq("parent_id", parent_id)
            result = query.limit(1).execute()
        except Exception as e:
            logger.error("find_category_failed", slug=slug, parent_id=parent_id, error=str(e))
            raise DatabaseError("select", str(e), details={"table": self.CATEGORIES_TABLE})

        return result.data[0]["id"] if result.data else None

    def find_elevator_type_ids(self, slugs: list[str]) -> dict[str, str]:
        """Batch lookup; returns slug -> id for the slugs that exist."""
        return self._find_ids_by_slug(self.ELEVATOR_TYPES_TABLE, slugs)

    def find_collection_ids(self, slugs: list[str]) -> dict[str, str]:
        """Batch lookup; returns slug -> id for the slugs that exist."""
        return self._find_ids_by_slug(self.COLLECTIONS_TABLE, slugs)

    def _find_ids_by_slug(self, table: str, slugs: list[str]) -> dict[str, str]:
        if not slugs:
            return {}

        logger.debug("finding_ids_by_slug", table=table, count=len(slugs))

        try:
            result = (
                self.db.table(table)
                .select("id, slug")
                .in_("slug", list(slugs))
                .execute()
            )
        except Exception as e:
            logger.error("find_ids_by_slug_failed", table=table, count=len(slugs), error=str(e))
            raise DatabaseError("select", str(e), details={"table": table})

        return {row["slug"]: row["id"] for row in result.data}


_catalog_lookup_service: Optional[CatalogLookupService] = None


def get_catalog_lookup_service() -> CatalogLookupService:
    """Get or create CatalogLookupService instance."""
    global _catalog_lookup_service
    if _catalog_lookup_service is None:
        _catalog_lookup_service = CatalogLookupService()
    return _catalog_lookup_service
