"""
Catalog writes for product imports.

One product group = one product row upserted on its slug, its taxonomy
links and its variants. Links and variants are replaced, not merged, so
re-importing a file converges on the file's contents.
"""

from decimal import Decimal
from typing import Any, Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError
from models.product_import import CatalogLookupResult, ProductStatus
from services.product_grouping_service import ProductGroup, VariantFields

logger = structlog.get_logger(__name__)


class CatalogWriteService:
    """
    Writes imported products to the catalog tables.

    Every failure surfaces as DatabaseError so the executor can record it
    against the group.
    """

    PRODUCTS_TABLE = "products"
    CATEGORY_LINKS_TABLE = "product_categories"
    ELEVATOR_TYPE_LINKS_TABLE = "product_elevator_types"
    COLLECTION_LINKS_TABLE = "product_collections"
    VARIANTS_TABLE = "product_variants"

    def __init__(self, client=None):
        self.db = client or get_supabase_client()

    # ===================
    # PRODUCT
    # ===================

    def upsert_product(self, group: ProductGroup, status: ProductStatus) -> str:
        """
        Create or update the product for a group, keyed on slug.

        Returns:
            Product id
        """
        payload = build_product_payload(group, status)

        try:
            result = (
                self.db.table(self.PRODUCTS_TABLE)
                .upsert(payload, on_conflict="slug")
                .execute()
            )
        except Exception as e:
            logger.error("upsert_product_failed", slug=payload["slug"], error=str(e))
            raise DatabaseError("upsert", str(e), details={"table": self.PRODUCTS_TABLE})

        if not result.data:
            raise DatabaseError(
                "upsert",
                f"No product returned for slug {payload['slug']}",
                details={"table": self.PRODUCTS_TABLE}
            )

        product_id = result.data[0]["id"]
        logger.debug("product_upserted", product_id=product_id, slug=payload["slug"], status=status.value)
        return product_id

    # ===================
    # TAXONOMY LINKS
    # ===================

    def replace_links(self, product_id: str, lookup: CatalogLookupResult) -> None:
        """Replace the product's category, elevator type and collection links."""
        category_ids = [
            category_id
            for category_id in (lookup.application_id, lookup.category_id, lookup.subcategory_id)
            if category_id
        ]
        category_rows = [
            {
                "product_id": product_id,
                "category_id": category_id,
                "is_primary": position == 0,
                "position": position,
            }
            for position, category_id in enumerate(category_ids)
        ]
        type_rows = [
            {"product_id": product_id, "elevator_type_id": type_id}
            for type_id in sorted(lookup.elevator_type_ids)
        ]
        collection_rows = [
            {"product_id": product_id, "collection_id": collection_id}
            for collection_id in sorted(lookup.collection_ids)
        ]

        self._replace_rows(self.CATEGORY_LINKS_TABLE, product_id, category_rows)
        self._replace_rows(self.ELEVATOR_TYPE_LINKS_TABLE, product_id, type_rows)
        self._replace_rows(self.COLLECTION_LINKS_TABLE, product_id, collection_rows)

    # ===================
    # VARIANTS
    # ===================

    def replace_variants(
        self,
        product_id: str,
        variants: list[VariantFields],
        status: ProductStatus
    ) -> int:
        """
        Replace the product's variants.

        Returns:
            Number of variants written
        """
        rows = [build_variant_payload(product_id, variant, status) for variant in variants]
        self._replace_rows(self.VARIANTS_TABLE, product_id, rows)
        return len(rows)

    def _replace_rows(self, table: str, product_id: str, rows: list[dict]) -> None:
        """Delete every row of table for the product, then insert rows."""
        try:
            self.db.table(table).delete().eq("product_id", product_id).execute()
            if rows:
                self.db.table(table).insert(rows).execute()
        except Exception as e:
            logger.error(
                "replace_rows_failed",
                table=table,
                product_id=product_id,
                row_count=len(rows),
                error=str(e)
            )
            raise DatabaseError("replace", str(e), details={"table": table})


# ===================
# PAYLOADS
# ===================

def build_product_payload(group: ProductGroup, status: ProductStatus) -> dict[str, Any]:
    """Product row for a group. Product-level fields come from the group's first row."""
    base = group.base
    stock = base.product_stock if base.product_stock is not None else 0
    specifications = [
        {"key": key, "value": value}
        for key, value in (base.attributes or {}).items()
    ]

    return {
        "name": group.title,
        "slug": group.slug,
        "short_description": base.short_description,
        "description": base.description,
        "status": status.value,
        "price": _money(base.product_price),
        "compare_at_price": _money(base.product_mrp),
        "track_inventory": base.track_inventory if base.track_inventory is not None else True,
        "stock_quantity": stock,
        "specifications": specifications,
    }


def build_variant_payload(
    product_id: str,
    variant: VariantFields,
    status: ProductStatus
) -> dict[str, Any]:
    """Variant row. Variants of a draft product are stored inactive."""
    payload: dict[str, Any] = {
        "product_id": product_id,
        "name": variant.title,
        "sku": variant.sku,
        "price": _money(variant.price),
        "compare_at_price": _money(variant.compare_at_price),
        "inventory_quantity": variant.stock,
        "status": "active" if status == ProductStatus.ACTIVE else "inactive",
    }
    for n in (1, 2, 3):
        name, value = variant.options[n - 1] if len(variant.options) >= n else (None, None)
        payload[f"option{n}_name"] = name
        payload[f"option{n}_value"] = value
    return payload


def _money(value: Optional[Decimal]) -> Optional[float]:
    """Stored prices carry two decimals."""
    return round(float(value), 2) if value is not None else None


_catalog_write_service: Optional[CatalogWriteService] = None


def get_catalog_write_service() -> CatalogWriteService:
    """Get or create CatalogWriteService instance."""
    global _catalog_write_service
    if _catalog_write_service is None:
        _catalog_write_service = CatalogWriteService()
    return _catalog_write_service
