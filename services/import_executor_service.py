"""
Executes a confirmed import.

Each product group is written independently: one failure is recorded
and the remaining groups continue. Nothing is retried.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional
import structlog

from config import settings
from models.product_import import GroupImportResult, GroupOutcome, ImportSummary
from services.catalog_write_service import CatalogWriteService, get_catalog_write_service
from services.import_validation_service import ImportDecision

logger = structlog.get_logger(__name__)


class ImportExecutor:
    """Writes decided product groups through a bounded worker pool."""

    def __init__(
        self,
        writer: Optional[CatalogWriteService] = None,
        max_workers: Optional[int] = None,
    ):
        self.writer = writer or get_catalog_write_service()
        self.max_workers = max_workers or settings.import_max_workers

    def execute(self, decisions: list[ImportDecision]) -> ImportSummary:
        """
        Import every decision exactly once.

        Args:
            decisions: Decisions from a preview with no blocking issues

        Returns:
            ImportSummary with one result per decision, in decision order
        """
        logger.info("import_execute_started", group_count=len(decisions), max_workers=self.max_workers)

        workers = min(self.max_workers, len(decisions))
        if workers <= 1:
            results = [self._import_group(decision) for decision in decisions]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(self._import_group, decisions))

        summary = ImportSummary.from_results(results)

        logger.info(
            "import_execute_complete",
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
            draft_count=summary.draft_count
        )

        return summary

    def _import_group(self, decision: ImportDecision) -> GroupImportResult:
        group = decision.group
        try:
            product_id = self.writer.upsert_product(group, decision.status)
            self.writer.replace_links(product_id, decision.lookup)
            written = self.writer.replace_variants(product_id, group.variants, decision.status)
        except Exception as e:
            logger.error(
                "import_group_failed",
                title=group.title,
                slug=group.slug,
                error=str(e)
            )
            return GroupImportResult(
                title=group.title,
                slug=group.slug,
                status=decision.status,
                outcome=GroupOutcome.FAILED,
                error=getattr(e, "message", None) or str(e),
            )

        logger.debug(
            "import_group_succeeded",
            title=group.title,
            product_id=product_id,
            variants=written,
            status=decision.status.value
        )

        return GroupImportResult(
            title=group.title,
            slug=group.slug,
            status=decision.status,
            outcome=GroupOutcome.SUCCEEDED,
            product_id=product_id,
            variants_written=written,
        )
