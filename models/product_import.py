"""
Product import schemas.

Values produced by the import pipeline (issues, lookup results, summaries)
and the API responses built from them.
"""

from enum import Enum
from typing import Optional
from pydantic import Field

from models.base import BaseSchema, FrozenSchema


class IssueSeverity(str, Enum):
    """How an import issue affects the pipeline."""
    BLOCKING = "blocking"                        # Prevents Confirm until fixed
    BLOCKING_FOR_STATUS = "blocking-for-status"  # Forces draft status only
    WARNING = "warning"                          # Advisory


class ProductStatus(str, Enum):
    """Catalog status a product is imported with."""
    ACTIVE = "active"
    DRAFT = "draft"


class GroupOutcome(str, Enum):
    """Result of writing one product group."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ImportIssue(FrozenSchema):
    """Single problem found in an import file."""

    field: str = Field(..., description="Column the issue refers to")
    message: str = Field(..., description="Human-readable message")
    severity: IssueSeverity
    row: Optional[int] = Field(None, description="File row number (header is row 1)")

    @property
    def is_blocking(self) -> bool:
        return self.severity == IssueSeverity.BLOCKING


class CatalogLookupResult(FrozenSchema):
    """
    Catalog ids resolved for one product group.

    application_id/category_id are None when the slug did not resolve;
    the issues explain why.
    """

    application_id: Optional[str] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    elevator_type_ids: frozenset[str] = Field(default_factory=frozenset)
    collection_ids: frozenset[str] = Field(default_factory=frozenset)
    issues: tuple[ImportIssue, ...] = ()


# ===================
# EXECUTION RESULTS
# ===================

class GroupImportResult(FrozenSchema):
    """Outcome of importing one product group."""

    title: str
    slug: str
    status: ProductStatus
    outcome: GroupOutcome
    product_id: Optional[str] = None
    variants_written: int = 0
    error: Optional[str] = None


class ImportSummary(FrozenSchema):
    """Aggregate result of one import execution. Written once."""

    total: int = Field(..., ge=0)
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    draft_count: int = Field(..., ge=0)
    results: tuple[GroupImportResult, ...] = ()
    message: str

    @classmethod
    def from_results(cls, results: list[GroupImportResult]) -> "ImportSummary":
        """Build the summary and completion message from per-group results."""
        succeeded = [r for r in results if r.outcome == GroupOutcome.SUCCEEDED]
        failed = len(results) - len(succeeded)
        draft_count = sum(1 for r in succeeded if r.status == ProductStatus.DRAFT)

        if failed == 0:
            message = f"Import completed successfully: {len(succeeded)} products imported"
        else:
            message = (
                f"Import completed with {failed} error{'' if failed == 1 else 's'}: "
                f"{len(succeeded)} of {len(results)} products imported"
            )
        if draft_count:
            message += f" ({draft_count} as draft)"

        return cls(
            total=len(results),
            succeeded=len(succeeded),
            failed=failed,
            draft_count=draft_count,
            results=tuple(results),
            message=message + "."
        )


# ===================
# API RESPONSES
# ===================

class PreviewVariant(BaseSchema):
    """Variant line shown in the preview table."""

    title: str
    sku: Optional[str] = None
    price: Optional[float] = None
    compare_at_price: Optional[float] = None
    stock: int = 0
    options: dict[str, str] = Field(default_factory=dict)


class PreviewGroup(BaseSchema):
    """One product as it will be imported."""

    title: str
    slug: str
    application_slug: Optional[str] = None
    category_slug: Optional[str] = None
    status: ProductStatus
    will_import_as_draft: bool
    status_label: str = Field(..., description="e.g. 'Will import as DRAFT'")
    variant_count: int
    variants: list[PreviewVariant] = Field(default_factory=list)
    issues: list[ImportIssue] = Field(default_factory=list)


class ImportPreviewResponse(BaseSchema):
    """Preview stage payload consumed by the import UI."""

    session_id: str
    stage: str
    filename: Optional[str] = None
    product_count: int
    variant_count: int
    blocking_count: int
    warning_count: int
    draft_count: int
    can_confirm: bool
    file_issues: list[ImportIssue] = Field(default_factory=list)
    groups: list[PreviewGroup] = Field(default_factory=list)
    expires_in_minutes: int


class ImportSessionResponse(BaseSchema):
    """Current state of an import session."""

    session_id: str
    stage: str
    can_advance: bool
    preview: Optional[ImportPreviewResponse] = None
    summary: Optional[ImportSummary] = None


class ImportResultResponse(BaseSchema):
    """Result stage payload."""

    session_id: str
    stage: str
    success: bool
    message: str
    summary: ImportSummary
