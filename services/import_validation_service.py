"""
Import validation and draft policy.

Field rules produce blocking issues and stop the file at Preview.
Unresolved application/category never block: they force the product to
draft. Everything else is a warning.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import structlog

from models.product_import import (
    CatalogLookupResult,
    ImportIssue,
    IssueSeverity,
    ProductStatus,
)
from parsers.product_csv_parser import ProductImportRow
from services.product_grouping_service import ProductGroup

logger = structlog.get_logger(__name__)

PRICE_MESSAGE = "Price must be a positive number."
INVALID_JSON_MESSAGE = "Invalid JSON."
TITLE_REQUIRED_MESSAGE = "Product title is required."

VALID_STATUSES = {status.value for status in ProductStatus}


@dataclass(frozen=True)
class ImportDecision:
    """How one product group will be imported. Derived, never stored."""
    group: ProductGroup
    lookup: CatalogLookupResult
    status: ProductStatus
    blocking_issues: tuple[ImportIssue, ...] = ()
    issues: tuple[ImportIssue, ...] = ()

    @property
    def will_import_as_draft(self) -> bool:
        return self.status == ProductStatus.DRAFT

    @property
    def warnings(self) -> tuple[ImportIssue, ...]:
        return tuple(i for i in self.issues if i.severity == IssueSeverity.WARNING)


# ===================
# DRAFT POLICY
# ===================

def should_mark_as_draft(lookup: CatalogLookupResult) -> bool:
    """True when the application or category did not resolve."""
    return lookup.application_id is None or lookup.category_id is None


def decide(group: ProductGroup, lookup: CatalogLookupResult) -> ImportDecision:
    """
    Validate a group and decide its import status.

    Args:
        group: Product group from the grouper
        lookup: Catalog resolution for the group

    Returns:
        ImportDecision with every issue for the group and its status
    """
    field_issues: list[ImportIssue] = []
    for row in group.rows:
        field_issues.extend(validate_row(row))

    issues = tuple(field_issues) + tuple(lookup.issues)
    blocking = tuple(i for i in issues if i.is_blocking)

    requested_draft = group.base.status == ProductStatus.DRAFT.value
    if should_mark_as_draft(lookup) or requested_draft:
        status = ProductStatus.DRAFT
    else:
        status = ProductStatus.ACTIVE

    if blocking:
        logger.debug(
            "group_has_blocking_issues",
            title=group.title,
            blocking_count=len(blocking)
        )

    return ImportDecision(
        group=group,
        lookup=lookup,
        status=status,
        blocking_issues=blocking,
        issues=issues,
    )


# ===================
# FIELD RULES
# ===================

def validate_row(row: ProductImportRow) -> list[ImportIssue]:
    """Field-level rules for one row (independent of catalog resolution)."""
    issues: list[ImportIssue] = []

    if not row.product_title:
        issues.append(_blocking("product_title", TITLE_REQUIRED_MESSAGE, row))

    # Both price columns report under product_price
    for value in (row.product_price, row.product_mrp):
        if not _is_positive(value):
            issues.append(_blocking("product_price", PRICE_MESSAGE, row))

    if row.raw_value("attributes") is not None and row.attributes is None:
        issues.append(_blocking("attributes", INVALID_JSON_MESSAGE, row))

    # Optional values that fall back when unparseable
    for column, value, fallback in (
        ("variant_price", row.variant_price, "product price"),
        ("variant_mrp", row.variant_mrp, "product MRP"),
        ("variant_stock", row.variant_stock, "product stock"),
        ("product_stock", row.product_stock, "0"),
    ):
        raw = row.raw_value(column)
        if raw is not None and value is None:
            issues.append(_warning(column, f'Invalid value "{raw}", using {fallback}.', row))

    if row.variant_price is not None and not _is_positive(row.variant_price):
        issues.append(_warning("variant_price", "Variant price is not positive.", row))

    if row.raw_value("track_inventory") is not None and row.track_inventory is None:
        issues.append(_warning(
            "track_inventory",
            f'Invalid value "{row.raw_value("track_inventory")}", inventory will be tracked.',
            row
        ))

    if row.status is not None and row.status not in VALID_STATUSES:
        issues.append(_warning(
            "status",
            f'Unknown status "{row.status}", using active.',
            row
        ))

    return issues


def find_duplicate_skus(groups: list[ProductGroup]) -> list[ImportIssue]:
    """
    File-level check: a SKU may only belong to one product.

    Returns:
        One blocking issue per SKU used by more than one group
    """
    owners: dict[str, list[str]] = {}
    for group in groups:
        for sku in group.skus:
            owners.setdefault(sku, []).append(group.title)

    issues = [
        ImportIssue(
            field="sku",
            message=f'Duplicate SKU "{sku}" used by multiple products: {", ".join(titles)}',
            severity=IssueSeverity.BLOCKING,
        )
        for sku, titles in owners.items()
        if len(titles) > 1
    ]

    if issues:
        logger.info("duplicate_skus_found", count=len(issues))

    return issues


# ===================
# CONFIRM GATE
# ===================

def count_blocking(decisions: list[ImportDecision], file_issues: list[ImportIssue]) -> int:
    """Blocking issues across the whole file."""
    return sum(len(d.blocking_issues) for d in decisions) + sum(
        1 for i in file_issues if i.is_blocking
    )


def can_confirm(decisions: list[ImportDecision], file_issues: list[ImportIssue]) -> bool:
    """The file may proceed to Confirm only with zero blocking issues."""
    return count_blocking(decisions, file_issues) == 0


# ===================
# HELPERS
# ===================

def _is_positive(value: Optional[Decimal]) -> bool:
    return value is not None and value > 0


def _blocking(column: str, message: str, row: ProductImportRow) -> ImportIssue:
    return ImportIssue(
        field=column,
        message=message,
        severity=IssueSeverity.BLOCKING,
        row=row.row_number
    )


def _warning(column: str, message: str, row: ProductImportRow) -> ImportIssue:
    return ImportIssue(
        field=column,
        message=message,
        severity=IssueSeverity.WARNING,
        row=row.row_number
    )
