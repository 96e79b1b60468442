"""
Business logic services.

Each service handles one step of the product import.
"""

from services import preview_cache_service
from services.catalog_lookup_service import CatalogLookupService, get_catalog_lookup_service
from services.catalog_write_service import CatalogWriteService, get_catalog_write_service
from services.product_grouping_service import ProductGroup, VariantFields, group_rows
from services.reference_resolution_service import ReferenceResolver
from services.import_validation_service import (
    ImportDecision,
    can_confirm,
    decide,
    find_duplicate_skus,
    should_mark_as_draft,
)
from services.import_executor_service import ImportExecutor
from services.upload_history_service import UploadHistoryService, get_upload_history_service
from services.import_pipeline_service import (
    ImportPipelineService,
    ImportPreview,
    ImportSession,
    ImportStage,
    can_advance,
    get_import_pipeline_service,
)

__all__ = [
    "preview_cache_service",
    "CatalogLookupService",
    "get_catalog_lookup_service",
    "CatalogWriteService",
    "get_catalog_write_service",
    "ProductGroup",
    "VariantFields",
    "group_rows",
    "ReferenceResolver",
    "ImportDecision",
    "can_confirm",
    "decide",
    "find_duplicate_skus",
    "should_mark_as_draft",
    "ImportExecutor",
    "UploadHistoryService",
    "get_upload_history_service",
    "ImportPipelineService",
    "ImportPreview",
    "ImportSession",
    "ImportStage",
    "can_advance",
    "get_import_pipeline_service",
]
