"""
Groups import rows into products with variants.

Rows sharing a trimmed product_title form one product; every row becomes
one variant of it. No validation happens here so the preview can show
every intended product, valid or not.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
import structlog

from parsers.product_csv_parser import ProductImportRow
from utils.text_utils import slugify

logger = structlog.get_logger(__name__)

DEFAULT_VARIANT_TITLE = "Default"


@dataclass
class VariantFields:
    """Variant definition derived from one row, with product-level fallbacks applied."""
    title: str
    row_number: int
    sku: Optional[str] = None
    price: Optional[Decimal] = None
    compare_at_price: Optional[Decimal] = None
    stock: int = 0
    options: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class ProductGroup:
    """One product to import and the rows that define it."""
    title: str
    rows: list[ProductImportRow] = field(default_factory=list)
    variants: list[VariantFields] = field(default_factory=list)

    @property
    def base(self) -> ProductImportRow:
        """Row holding the product-level fields (first row of the group)."""
        return self.rows[0]

    @property
    def slug(self) -> str:
        return slugify(self.title)

    @property
    def variant_count(self) -> int:
        return len(self.variants)

    @property
    def skus(self) -> list[str]:
        """Distinct variant SKUs, in row order."""
        seen: list[str] = []
        for variant in self.variants:
            if variant.sku and variant.sku not in seen:
                seen.append(variant.sku)
        return seen

    def lookup_key(self) -> tuple:
        """Catalog slugs this group resolves against."""
        base = self.base
        return (
            base.application_slug,
            base.category_slug,
            base.subcategory_slug,
            tuple(base.elevator_types),
            tuple(base.collections),
        )


def build_variant(row: ProductImportRow) -> VariantFields:
    """
    Build the variant for a row.

    Fallbacks: title -> "Default", variant_price -> product_price,
    variant_mrp -> product_mrp, variant_stock -> product_stock -> 0.
    """
    if row.variant_stock is not None:
        stock = row.variant_stock
    elif row.product_stock is not None:
        stock = row.product_stock
    else:
        stock = 0

    return VariantFields(
        title=row.variant_title or DEFAULT_VARIANT_TITLE,
        row_number=row.row_number,
        sku=row.variant_sku,
        price=row.variant_price if row.variant_price is not None else row.product_price,
        compare_at_price=row.variant_mrp if row.variant_mrp is not None else row.product_mrp,
        stock=stock,
        options=list(row.variant_options),
    )


def group_rows(rows: list[ProductImportRow]) -> list[ProductGroup]:
    """
    Group rows by trimmed product_title (case-sensitive).

    Groups come out in order of first appearance of their title and keep
    their rows in file order.

    Args:
        rows: Parsed rows

    Returns:
        One ProductGroup per distinct title, each with >= 1 variant
    """
    groups: dict[str, ProductGroup] = {}

    for row in rows:
        key = row.product_title.strip()
        group = groups.get(key)
        if group is None:
            group = ProductGroup(title=key)
            groups[key] = group
        group.rows.append(row)
        group.variants.append(build_variant(row))

    result = list(groups.values())

    logger.info(
        "rows_grouped",
        row_count=len(rows),
        group_count=len(result),
        multi_variant_groups=sum(1 for g in result if g.variant_count > 1)
    )

    return result
