"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    FrozenSchema,
)
from models.product_import import (
    IssueSeverity,
    ProductStatus,
    GroupOutcome,
    ImportIssue,
    CatalogLookupResult,
    GroupImportResult,
    ImportSummary,
    PreviewVariant,
    PreviewGroup,
    ImportPreviewResponse,
    ImportSessionResponse,
    ImportResultResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",

    # Product import
    "IssueSeverity",
    "ProductStatus",
    "GroupOutcome",
    "ImportIssue",
    "CatalogLookupResult",
    "GroupImportResult",
    "ImportSummary",
    "PreviewVariant",
    "PreviewGroup",
    "ImportPreviewResponse",
    "ImportSessionResponse",
    "ImportResultResponse",
]
