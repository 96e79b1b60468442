"""
File parsers module.
"""

from parsers.product_csv_parser import (
    parse_product_csv,
    read_raw_rows,
    ProductImportRow,
    REQUIRED_COLUMNS,
    OPTIONAL_COLUMNS,
)

__all__ = [
    "parse_product_csv",
    "read_raw_rows",
    "ProductImportRow",
    "REQUIRED_COLUMNS",
    "OPTIONAL_COLUMNS",
]
