"""
Product import pipeline.

Drives one import attempt through Upload -> Preview -> Confirm -> Result.
Upload and Preview are side-effect free; the catalog is only written by
execute(), exactly once per session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
import hashlib
import threading
import structlog

from config import settings
from exceptions import (
    ImportFileTooLargeError,
    ImportSessionNotFoundError,
    InvalidImportTransitionError,
    ProductImportParseError,
)
from models.product_import import (
    ImportIssue,
    ImportPreviewResponse,
    ImportResultResponse,
    ImportSessionResponse,
    ImportSummary,
    IssueSeverity,
    PreviewGroup,
    PreviewVariant,
)
from parsers.product_csv_parser import parse_product_csv
from services import preview_cache_service
from services.catalog_lookup_service import CatalogLookupService
from services.catalog_write_service import CatalogWriteService
from services.import_executor_service import ImportExecutor
from services.import_validation_service import (
    ImportDecision,
    count_blocking,
    decide,
    find_duplicate_skus,
)
from services.product_grouping_service import ProductGroup, group_rows
from services.reference_resolution_service import ReferenceResolver
from services.upload_history_service import UploadHistoryService, get_upload_history_service

logger = structlog.get_logger(__name__)


class ImportStage(str, Enum):
    UPLOAD = "upload"
    PREVIEW = "preview"
    CONFIRM = "confirm"
    RESULT = "result"


# Allowed stage changes; RESULT is terminal
TRANSITIONS: dict[ImportStage, set[ImportStage]] = {
    ImportStage.UPLOAD: {ImportStage.PREVIEW},
    ImportStage.PREVIEW: {ImportStage.UPLOAD, ImportStage.CONFIRM},
    ImportStage.CONFIRM: {ImportStage.RESULT},
    ImportStage.RESULT: set(),
}


# ===================
# SESSION STATE
# ===================

@dataclass
class ImportPreview:
    """Everything the preview stage shows. Derived from the file, never written."""
    groups: list[ProductGroup]
    decisions: list[ImportDecision]
    file_issues: list[ImportIssue] = field(default_factory=list)

    @property
    def product_count(self) -> int:
        return len(self.groups)

    @property
    def variant_count(self) -> int:
        return sum(g.variant_count for g in self.groups)

    @property
    def blocking_count(self) -> int:
        return count_blocking(self.decisions, self.file_issues)

    @property
    def warning_count(self) -> int:
        return sum(len(d.warnings) for d in self.decisions) + sum(
            1 for i in self.file_issues if i.severity == IssueSeverity.WARNING
        )

    @property
    def draft_count(self) -> int:
        return sum(1 for d in self.decisions if d.will_import_as_draft)

    @property
    def can_confirm(self) -> bool:
        return self.blocking_count == 0


@dataclass
class ImportSession:
    """One import attempt."""
    id: str
    stage: ImportStage
    filename: Optional[str] = None
    file_hash: Optional[str] = None
    preview: Optional[ImportPreview] = None
    summary: Optional[ImportSummary] = None
    created_at: datetime = field(default_factory=datetime.now)


def can_advance(session: ImportSession) -> bool:
    """Whether the session may move forward from its current stage."""
    if session.stage == ImportStage.UPLOAD:
        return True
    if session.stage == ImportStage.PREVIEW:
        return session.preview is not None and session.preview.can_confirm
    if session.stage == ImportStage.CONFIRM:
        return True
    return False


# ===================
# SERVICE
# ===================

class ImportPipelineService:
    """
    Product import orchestration.

    Collaborators are injectable; by default each uses the shared
    Supabase client.
    """

    def __init__(
        self,
        lookup_service: Optional[CatalogLookupService] = None,
        writer: Optional[CatalogWriteService] = None,
        history: Optional[UploadHistoryService] = None,
    ):
        self.lookup_service = lookup_service
        self.writer = writer
        self.history = history
        self._lock = threading.Lock()

    # ===================
    # UPLOAD -> PREVIEW
    # ===================

    def preview_upload(self, content: bytes, filename: Optional[str] = None) -> ImportSession:
        """
        Decode an uploaded file and build its preview.

        Raises:
            ImportFileTooLargeError: File exceeds import_max_file_mb
            ProductImportParseError: File is not UTF-8 CSV, empty, or missing columns
        """
        limit = settings.import_max_file_bytes
        if len(content) > limit:
            logger.warning("import_file_too_large", filename=filename, size=len(content), limit=limit)
            raise ImportFileTooLargeError(len(content), limit)

        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            logger.warning("import_file_not_utf8", filename=filename, error=str(e))
            raise ProductImportParseError(
                message="File must be a UTF-8 encoded CSV",
                details={"original_error": str(e)}
            )

        file_hash = hashlib.sha256(content).hexdigest()
        return self.start(text, filename=filename, file_hash=file_hash)

    def start(
        self,
        text: str,
        filename: Optional[str] = None,
        file_hash: Optional[str] = None,
    ) -> ImportSession:
        """
        Parse, group, resolve and validate a file, opening a session at Preview.

        Parse errors propagate and no session is created.

        Args:
            text: Decoded CSV content
            filename: Original file name, for history and logs
            file_hash: sha256 of the uploaded bytes, enables duplicate detection

        Returns:
            ImportSession at the PREVIEW stage
        """
        logger.info("import_preview_started", filename=filename)

        rows = parse_product_csv(text)
        groups = group_rows(rows)

        resolver = ReferenceResolver(lookup_service=self.lookup_service)
        lookups = resolver.resolve_all(groups)
        decisions = [decide(group, lookup) for group, lookup in zip(groups, lookups)]

        file_issues = find_duplicate_skus(groups)
        if file_hash and self.history is not None:
            previous = self.history.check_duplicate(file_hash)
            if previous:
                file_issues.append(ImportIssue(
                    field="file",
                    message=(
                        f"This file was already imported on {str(previous['uploaded_at'])[:10]} "
                        f"({previous['filename']})"
                    ),
                    severity=IssueSeverity.WARNING,
                ))

        session = ImportSession(
            id=preview_cache_service.new_session_id(),
            stage=ImportStage.UPLOAD,
            filename=filename,
            file_hash=file_hash,
            preview=ImportPreview(groups=groups, decisions=decisions, file_issues=file_issues),
        )
        self._transition(session, ImportStage.PREVIEW)
        preview_cache_service.store_session(session.id, session)

        logger.info(
            "import_preview_created",
            session_id=session.id,
            filename=filename,
            products=session.preview.product_count,
            variants=session.preview.variant_count,
            blocking=session.preview.blocking_count,
            warnings=session.preview.warning_count,
            drafts=session.preview.draft_count
        )

        return session

    # ===================
    # STAGE CHANGES
    # ===================

    def get_session(self, session_id: str) -> ImportSession:
        """Raises ImportSessionNotFoundError when expired or unknown."""
        session = preview_cache_service.retrieve_session(session_id)
        if session is None:
            raise ImportSessionNotFoundError(session_id)
        return session

    def back_to_upload(self, session: ImportSession) -> ImportSession:
        """Preview -> Upload. The session is discarded; nothing was written."""
        self._transition(session, ImportStage.UPLOAD)
        preview_cache_service.delete_session(session.id)
        logger.info("import_back_to_upload", session_id=session.id)
        return session

    def confirm(self, session: ImportSession) -> ImportSession:
        """Preview -> Confirm, only when the preview has no blocking issues."""
        self._transition(session, ImportStage.CONFIRM)
        logger.info("import_confirmed", session_id=session.id)
        return session

    def execute(self, session: ImportSession) -> ImportSummary:
        """
        Confirm -> Result: write the catalog.

        The stage changes before the executor runs, so a second call on the
        same session fails instead of importing twice.
        """
        executor = ImportExecutor(writer=self.writer)
        self._transition(session, ImportStage.RESULT)

        summary = executor.execute(session.preview.decisions)
        session.summary = summary
        preview_cache_service.store_session(session.id, session)

        if session.file_hash and self.history is not None and summary.succeeded:
            try:
                self.history.record_upload(
                    file_hash=session.file_hash,
                    filename=session.filename or "unknown",
                    row_count=session.preview.variant_count,
                )
            except Exception as e:
                # The catalog is already written; the summary stands
                logger.warning(
                    "import_history_record_failed",
                    session_id=session.id,
                    error=str(e)
                )

        logger.info(
            "import_session_complete",
            session_id=session.id,
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed
        )

        return summary

    def _transition(self, session: ImportSession, target: ImportStage) -> None:
        with self._lock:
            current = session.stage
            if target not in TRANSITIONS[current]:
                reason = "result is final" if current == ImportStage.RESULT else "not an allowed step"
                raise InvalidImportTransitionError(current.value, target.value, reason)
            if (
                current == ImportStage.PREVIEW
                and target == ImportStage.CONFIRM
                and not can_advance(session)
            ):
                raise InvalidImportTransitionError(
                    current.value,
                    target.value,
                    f"{session.preview.blocking_count} blocking issues must be fixed first"
                )
            session.stage = target

        logger.debug("import_stage_changed", session_id=session.id, from_stage=current.value, to_stage=target.value)


# ===================
# RESPONSES
# ===================

def build_preview_response(session: ImportSession) -> ImportPreviewResponse:
    """Preview payload for the UI."""
    preview = session.preview
    groups = []
    for decision in preview.decisions:
        group = decision.group
        groups.append(PreviewGroup(
            title=group.title,
            slug=group.slug,
            application_slug=group.base.application_slug,
            category_slug=group.base.category_slug,
            status=decision.status,
            will_import_as_draft=decision.will_import_as_draft,
            status_label=f"Will import as {decision.status.value.upper()}",
            variant_count=group.variant_count,
            variants=[
                PreviewVariant(
                    title=v.title,
                    sku=v.sku,
                    price=float(v.price) if v.price is not None else None,
                    compare_at_price=float(v.compare_at_price) if v.compare_at_price is not None else None,
                    stock=v.stock,
                    options=dict(v.options),
                )
                for v in group.variants
            ],
            issues=list(decision.issues),
        ))

    return ImportPreviewResponse(
        session_id=session.id,
        stage=session.stage.value,
        filename=session.filename,
        product_count=preview.product_count,
        variant_count=preview.variant_count,
        blocking_count=preview.blocking_count,
        warning_count=preview.warning_count,
        draft_count=preview.draft_count,
        can_confirm=preview.can_confirm,
        file_issues=list(preview.file_issues),
        groups=groups,
        expires_in_minutes=settings.import_preview_ttl_minutes,
    )


def build_session_response(session: ImportSession) -> ImportSessionResponse:
    return ImportSessionResponse(
        session_id=session.id,
        stage=session.stage.value,
        can_advance=can_advance(session),
        preview=build_preview_response(session) if session.preview else None,
        summary=session.summary,
    )


def build_result_response(session: ImportSession) -> ImportResultResponse:
    summary = session.summary
    return ImportResultResponse(
        session_id=session.id,
        stage=session.stage.value,
        success=summary.failed == 0,
        message=summary.message,
        summary=summary,
    )


_import_pipeline_service: Optional[ImportPipelineService] = None


def get_import_pipeline_service() -> ImportPipelineService:
    """Get or create ImportPipelineService instance."""
    global _import_pipeline_service
    if _import_pipeline_service is None:
        _import_pipeline_service = ImportPipelineService(history=get_upload_history_service())
    return _import_pipeline_service
