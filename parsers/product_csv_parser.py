"""
CSV parser for bulk product imports.

Turns the uploaded product/variant CSV into typed row records. Rows are
not validated here beyond what is needed to type them: unparseable
optional values become None and the validator reports them from the raw
cell text kept on each record.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Any, Optional
import json
import structlog

import pandas as pd

from exceptions import (
    ProductImportParseError,
    EmptyImportFileError,
    MissingColumnsError,
)
from utils.text_utils import clean_text, split_comma_list

logger = structlog.get_logger(__name__)


# ===================
# COLUMNS
# ===================

REQUIRED_COLUMNS = [
    "product_title",
    "short_description",
    "application_slug",
    "category_slug",
    "product_price",
    "product_mrp",
]

OPTIONAL_COLUMNS = [
    "brief_description",
    "subcategory_slug",
    "elevator_types",
    "collections",
    "track_inventory",
    "product_stock",
    "status",
    "variant_title",
    "variant_sku",
    "variant_option_1_name",
    "variant_option_1_value",
    "variant_option_2_name",
    "variant_option_2_value",
    "variant_option_3_name",
    "variant_option_3_value",
    "variant_price",
    "variant_mrp",
    "variant_stock",
    "attributes",
]

TRUE_VALUES = {"true", "1", "yes", "y"}
FALSE_VALUES = {"false", "0", "no", "n"}


# ===================
# DATA CLASSES
# ===================

@dataclass
class ProductImportRow:
    """One data row of the import file, typed."""
    row_number: int
    product_title: str
    short_description: Optional[str] = None
    description: Optional[str] = None
    application_slug: Optional[str] = None
    category_slug: Optional[str] = None
    subcategory_slug: Optional[str] = None
    elevator_types: list[str] = field(default_factory=list)
    collections: list[str] = field(default_factory=list)
    product_price: Optional[Decimal] = None
    product_mrp: Optional[Decimal] = None
    track_inventory: Optional[bool] = None
    product_stock: Optional[int] = None
    status: Optional[str] = None
    variant_title: Optional[str] = None
    variant_sku: Optional[str] = None
    variant_options: list[tuple[str, str]] = field(default_factory=list)
    variant_price: Optional[Decimal] = None
    variant_mrp: Optional[Decimal] = None
    variant_stock: Optional[int] = None
    attributes: Optional[dict[str, Any]] = None
    raw: dict[str, str] = field(default_factory=dict)

    def raw_value(self, column: str) -> Optional[str]:
        """Original cell text for a column, None if absent or blank."""
        return clean_text(self.raw.get(column))


# ===================
# MAIN PARSER
# ===================

def parse_product_csv(text: str) -> list[ProductImportRow]:
    """
    Parse product import CSV text.

    Args:
        text: Decoded file content

    Returns:
        Typed rows in file order

    Raises:
        EmptyImportFileError: File has no data rows (empty or header only)
        MissingColumnsError: Required columns missing from the header
        ProductImportParseError: File is not valid CSV
    """
    logger.info("parsing_product_csv", size=len(text) if text else 0)

    raw_rows = read_raw_rows(text)
    rows = [_to_import_row(row_number, raw) for row_number, raw in raw_rows]

    logger.info(
        "product_csv_parsed",
        row_count=len(rows),
        distinct_titles=len({r.product_title for r in rows})
    )

    return rows


def read_raw_rows(text: str) -> list[tuple[int, dict[str, str]]]:
    """
    Read CSV text into (row_number, header-keyed strings) pairs.

    Header columns are matched case-sensitively after stripping surrounding
    whitespace. Rows whose cells are all blank are skipped.

    Raises:
        EmptyImportFileError, MissingColumnsError, ProductImportParseError
    """
    if text is None or not text.strip():
        logger.warning("product_csv_empty")
        raise EmptyImportFileError()

    text = text.lstrip("\ufeff")

    try:
        df = pd.read_csv(
            StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        logger.warning("product_csv_empty")
        raise EmptyImportFileError()
    except (pd.errors.ParserError, ValueError) as e:
        logger.error("product_csv_read_failed", error=str(e))
        raise ProductImportParseError(
            message="Failed to read CSV file",
            details={"original_error": str(e)}
        )

    df = df.fillna("")
    df.columns = [str(col).strip() for col in df.columns]

    if not df.empty:
        blank = df.apply(lambda col: col.astype(str).str.strip().eq(""))
        df = df[~blank.all(axis=1)]

    if df.empty:
        logger.warning("product_csv_no_data_rows", columns=len(df.columns))
        raise EmptyImportFileError()

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        logger.warning("product_csv_missing_columns", missing=missing)
        raise MissingColumnsError(missing)

    columns = list(df.columns)
    rows: list[tuple[int, dict[str, str]]] = []
    for idx, values in zip(df.index, df.itertuples(index=False, name=None)):
        row_num = int(idx) + 2  # CSV row (1-indexed + header)
        rows.append((row_num, {col: str(value) for col, value in zip(columns, values)}))

    return rows


# ===================
# TYPING HELPERS
# ===================

def _to_import_row(row_number: int, raw: dict[str, str]) -> ProductImportRow:
    """Convert one raw row to a typed record."""
    options = []
    for n in (1, 2, 3):
        name = clean_text(raw.get(f"variant_option_{n}_name"))
        value = clean_text(raw.get(f"variant_option_{n}_value"))
        if name and value:
            options.append((name, value))

    status = clean_text(raw.get("status"))

    return ProductImportRow(
        row_number=row_number,
        product_title=(raw.get("product_title") or "").strip(),
        short_description=clean_text(raw.get("short_description")),
        description=clean_text(raw.get("brief_description")),
        application_slug=clean_text(raw.get("application_slug")),
        category_slug=clean_text(raw.get("category_slug")),
        subcategory_slug=clean_text(raw.get("subcategory_slug")),
        elevator_types=split_comma_list(raw.get("elevator_types")),
        collections=split_comma_list(raw.get("collections")),
        product_price=_parse_decimal(raw.get("product_price")),
        product_mrp=_parse_decimal(raw.get("product_mrp")),
        track_inventory=_parse_bool(raw.get("track_inventory")),
        product_stock=_parse_int(raw.get("product_stock")),
        status=status.lower() if status else None,
        variant_title=clean_text(raw.get("variant_title")),
        variant_sku=clean_text(raw.get("variant_sku")),
        variant_options=options,
        variant_price=_parse_decimal(raw.get("variant_price")),
        variant_mrp=_parse_decimal(raw.get("variant_mrp")),
        variant_stock=_parse_int(raw.get("variant_stock")),
        attributes=_parse_attributes(raw.get("attributes")),
        raw=raw,
    )


def _parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    """Parse a price cell. Returns None for blank or non-numeric values."""
    value = clean_text(value)
    if value is None:
        return None
    try:
        # Clean up string: remove currency symbols, thousands separators
        value_str = value.replace("$", "").replace("₹", "").replace(",", "").replace(" ", "")
        parsed = Decimal(value_str)
        if not parsed.is_finite():
            return None
        return parsed
    except InvalidOperation:
        return None


def _parse_int(value: Optional[str]) -> Optional[int]:
    """Parse a stock cell. Decimals are truncated ("50.7" -> 50)."""
    value = clean_text(value)
    if value is None:
        return None
    try:
        parsed = Decimal(value.replace(",", ""))
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return int(parsed)


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    """Parse true/false style cells. Returns None when blank or unrecognized."""
    value = clean_text(value)
    if value is None:
        return None
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def _parse_attributes(value: Optional[str]) -> Optional[dict[str, Any]]:
    """Parse the attributes cell as a JSON object. None when blank or invalid."""
    value = clean_text(value)
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
