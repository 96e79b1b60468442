"""
Resolves a product group's catalog slugs to catalog ids.

One resolution per group, keyed on the group's slug combination.
Results and individual slug lookups are memoized for the lifetime of a
resolver, so a file where hundreds of rows share an application and
category costs one lookup per distinct slug.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional
import threading
import structlog

from config import settings
from models.product_import import CatalogLookupResult, ImportIssue, IssueSeverity
from services.catalog_lookup_service import CatalogLookupService, get_catalog_lookup_service
from services.product_grouping_service import ProductGroup

logger = structlog.get_logger(__name__)

LookupKey = tuple[Optional[str], Optional[str], Optional[str], tuple[str, ...], tuple[str, ...]]


class ReferenceResolver:
    """
    Memoizing slug resolver for one import run.

    Read-only and safe to call repeatedly: identical slug combinations
    always yield the same CatalogLookupResult object.
    """

    def __init__(
        self,
        lookup_service: Optional[CatalogLookupService] = None,
        max_workers: Optional[int] = None,
    ):
        self.lookups = lookup_service or get_catalog_lookup_service()
        self.max_workers = max_workers or settings.lookup_max_workers
        self._lock = threading.Lock()
        self._applications: dict[str, Optional[str]] = {}
        self._categories: dict[tuple[str, Optional[str]], Optional[str]] = {}
        self._elevator_types: dict[str, Optional[str]] = {}
        self._collections: dict[str, Optional[str]] = {}
        self._results: dict[LookupKey, CatalogLookupResult] = {}

    # ===================
    # PUBLIC
    # ===================

    def resolve(self, group: ProductGroup) -> CatalogLookupResult:
        """Resolve one group's catalog references."""
        return self._resolve_cached(group.lookup_key())

    def resolve_all(self, groups: list[ProductGroup]) -> list[CatalogLookupResult]:
        """
        Resolve every group, looking up distinct slug combinations concurrently.

        Returns:
            Lookup results in the same order as groups
        """
        keys: list[LookupKey] = []
        for group in groups:
            key = group.lookup_key()
            if key not in keys:
                keys.append(key)

        workers = min(self.max_workers, len(keys))
        if workers <= 1:
            for key in keys:
                self._resolve_cached(key)
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                # list() surfaces the first lookup failure here
                list(pool.map(self._resolve_cached, keys))

        logger.info(
            "references_resolved",
            group_count=len(groups),
            distinct_combinations=len(keys),
            applications_looked_up=len(self._applications),
            categories_looked_up=len(self._categories),
        )

        return [self._results[group.lookup_key()] for group in groups]

    # ===================
    # RESOLUTION
    # ===================

    def _resolve_cached(self, key: LookupKey) -> CatalogLookupResult:
        with self._lock:
            cached = self._results.get(key)
        if cached is not None:
            return cached

        result = self._resolve_key(*key)

        with self._lock:
            # Keep the first result if another worker got here too
            return self._results.setdefault(key, result)

    def _resolve_key(
        self,
        application_slug: Optional[str],
        category_slug: Optional[str],
        subcategory_slug: Optional[str],
        elevator_type_slugs: tuple[str, ...],
        collection_slugs: tuple[str, ...],
    ) -> CatalogLookupResult:
        issues: list[ImportIssue] = []

        application_id = self._application_id(application_slug) if application_slug else None
        if application_id is None:
            issues.append(ImportIssue(
                field="application_slug",
                message=_draft_message("Application", application_slug),
                severity=IssueSeverity.BLOCKING_FOR_STATUS,
            ))

        category_id = self._category_id(category_slug, application_id) if category_slug else None
        if category_id is None:
            issues.append(ImportIssue(
                field="category_slug",
                message=_draft_message("Category", category_slug),
                severity=IssueSeverity.BLOCKING_FOR_STATUS,
            ))

        subcategory_id = None
        if subcategory_slug:
            subcategory_id = self._category_id(subcategory_slug, category_id)
            if subcategory_id is None:
                issues.append(ImportIssue(
                    field="subcategory_slug",
                    message=f'Subcategory "{subcategory_slug}" not found',
                    severity=IssueSeverity.WARNING,
                ))

        elevator_type_ids, missing_types = self._batch_ids(
            elevator_type_slugs, self._elevator_types, self.lookups.find_elevator_type_ids
        )
        if missing_types:
            issues.append(ImportIssue(
                field="elevator_types",
                message=f"Elevator types not found: {', '.join(missing_types)}",
                severity=IssueSeverity.WARNING,
            ))

        collection_ids, missing_collections = self._batch_ids(
            collection_slugs, self._collections, self.lookups.find_collection_ids
        )
        if missing_collections:
            issues.append(ImportIssue(
                field="collections",
                message=f"Collections not found: {', '.join(missing_collections)}",
                severity=IssueSeverity.WARNING,
            ))

        result = CatalogLookupResult(
            application_id=application_id,
            category_id=category_id,
            subcategory_id=subcategory_id,
            elevator_type_ids=frozenset(elevator_type_ids),
            collection_ids=frozenset(collection_ids),
            issues=tuple(issues),
        )

        logger.debug(
            "reference_resolved",
            application_slug=application_slug,
            category_slug=category_slug,
            application_found=application_id is not None,
            category_found=category_id is not None,
            issue_count=len(issues),
        )

        return result

    # ===================
    # MEMOIZED LOOKUPS
    # ===================

    def _application_id(self, slug: str) -> Optional[str]:
        with self._lock:
            if slug in self._applications:
                return self._applications[slug]
        application_id = self.lookups.find_application_id(slug)
        with self._lock:
            self._applications[slug] = application_id
        return application_id

    def _category_id(self, slug: str, parent_id: Optional[str]) -> Optional[str]:
        key = (slug, parent_id)
        with self._lock:
            if key in self._categories:
                return self._categories[key]
        category_id = self.lookups.find_category_id(slug, parent_id)
        with self._lock:
            self._categories[key] = category_id
        return category_id

    def _batch_ids(
        self,
        slugs: tuple[str, ...],
        cache: dict[str, Optional[str]],
        fetch: Callable[[list[str]], dict[str, str]],
    ) -> tuple[list[str], list[str]]:
        """Return (ids found, slugs missing), querying only uncached slugs."""
        if not slugs:
            return [], []

        with self._lock:
            unknown = [slug for slug in slugs if slug not in cache]
        if unknown:
            found = fetch(unknown)
            with self._lock:
                for slug in unknown:
                    cache[slug] = found.get(slug)

        with self._lock:
            ids = [cache[slug] for slug in slugs if cache[slug] is not None]
            missing = [slug for slug in slugs if cache[slug] is None]
        return ids, missing


def _draft_message(entity: str, slug: Optional[str]) -> str:
    if not slug:
        return f"{entity} slug is empty. Product will import as DRAFT."
    return f'{entity} "{slug}" not found. Product will import as DRAFT.'
