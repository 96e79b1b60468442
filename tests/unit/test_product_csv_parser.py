"""
Unit tests for the product import CSV parser.

Run: pytest tests/unit/test_product_csv_parser.py -v
"""

from decimal import Decimal
import pytest

from parsers.product_csv_parser import (
    parse_product_csv,
    read_raw_rows,
    REQUIRED_COLUMNS,
    _parse_decimal,
    _parse_int,
    _parse_bool,
    _parse_attributes,
)
from exceptions import (
    EmptyImportFileError,
    MissingColumnsError,
    ProductImportParseError,
)
from tests.factories import ImportRowFactory, build_csv

HEADER = ",".join(REQUIRED_COLUMNS)


# ===================
# EMPTY / MALFORMED FILES
# ===================

class TestEmptyFiles:
    """Files without data rows are rejected before anything else."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\n", "\ufeff"])
    def test_blank_text_is_empty(self, text):
        with pytest.raises(EmptyImportFileError):
            parse_product_csv(text)

    def test_header_only_is_empty(self):
        with pytest.raises(EmptyImportFileError):
            parse_product_csv(HEADER + "\n")

    def test_header_only_built_by_factory_is_empty(self):
        with pytest.raises(EmptyImportFileError):
            parse_product_csv(build_csv([]))

    def test_rows_of_blank_cells_only_is_empty(self):
        text = HEADER + "\n" + "," * (len(REQUIRED_COLUMNS) - 1) + "\n"
        with pytest.raises(EmptyImportFileError):
            parse_product_csv(text)

    def test_empty_wins_over_missing_columns(self):
        """A header-only file with missing columns reports Empty."""
        with pytest.raises(EmptyImportFileError):
            parse_product_csv("product_title,short_description\n")

    def test_empty_error_message(self):
        with pytest.raises(EmptyImportFileError) as exc:
            parse_product_csv("")
        assert exc.value.code == "IMPORT_FILE_EMPTY"
        assert exc.value.status_code == 422


class TestMissingColumns:
    """Header must contain every required column."""

    def test_missing_columns_listed(self):
        text = "product_title,short_description\nMotor,Fast motor\n"

        with pytest.raises(MissingColumnsError) as exc:
            parse_product_csv(text)

        assert exc.value.missing == [
            "application_slug",
            "category_slug",
            "product_price",
            "product_mrp",
        ]
        assert "application_slug" in exc.value.message
        assert exc.value.code == "IMPORT_MISSING_COLUMNS"

    def test_header_case_matters(self):
        text = HEADER.replace("product_mrp", "Product_MRP") + "\nMotor,desc,motors,traction-motors,1,1\n"

        with pytest.raises(MissingColumnsError) as exc:
            parse_product_csv(text)

        assert exc.value.missing == ["product_mrp"]

    def test_header_whitespace_is_ignored(self):
        header = ", ".join(REQUIRED_COLUMNS)
        rows = parse_product_csv(header + "\nMotor,desc,motors,traction-motors,100,120\n")

        assert len(rows) == 1
        assert rows[0].product_title == "Motor"

    def test_extra_columns_are_ignored(self):
        text = build_csv([ImportRowFactory.create(product_title="Motor", color="red")])

        rows = parse_product_csv(text)

        assert rows[0].product_title == "Motor"
        assert rows[0].raw["color"] == "red"


class TestMalformedFiles:

    def test_inconsistent_field_count_raises_parse_error(self):
        text = (
            HEADER + "\n"
            "Motor,desc,motors,traction-motors,100,120\n"
            "Motor,desc,motors,traction-motors,100,120,extra,more\n"
        )

        with pytest.raises(ProductImportParseError) as exc:
            parse_product_csv(text)

        assert exc.value.code == "IMPORT_PARSE_ERROR"


# ===================
# ROW TYPING
# ===================

class TestRowParsing:
    """Typed row records."""

    def test_row_numbers_start_after_header(self):
        text = build_csv(ImportRowFactory.create_batch(3))

        rows = parse_product_csv(text)

        assert [r.row_number for r in rows] == [2, 3, 4]

    def test_blank_row_is_skipped_but_keeps_numbering(self):
        text = (
            HEADER + "\n"
            "Motor,desc,motors,traction-motors,100,120\n"
            ",,,,,\n"
            "Sensor,desc,safety-devices,sensors,10,12\n"
        )

        rows = parse_product_csv(text)

        assert [r.product_title for r in rows] == ["Motor", "Sensor"]
        assert [r.row_number for r in rows] == [2, 4]

    def test_bom_is_stripped(self):
        rows = parse_product_csv("\ufeff" + HEADER + "\nMotor,desc,motors,traction-motors,100,120\n")

        assert rows[0].product_title == "Motor"

    def test_quoted_newlines_commas_and_long_text(self):
        long_description = "line1\nline2 " + "x" * 800
        text = build_csv([
            ImportRowFactory.create(product_title="Motor, big", brief_description=long_description),
            ImportRowFactory.create(product_title="Sensor"),
        ])

        rows = parse_product_csv(text)

        assert len(rows) == 2
        assert rows[0].product_title == "Motor, big"
        assert rows[0].description == long_description
        assert rows[1].product_title == "Sensor"

    def test_full_row(self):
        text = build_csv([ImportRowFactory.create(
            product_title="  VVVF Elevator Motor  ",
            brief_description="Long description",
            subcategory_slug="vvvf-motors",
            elevator_types="passenger, commercial,,passenger",
            collections="featured",
            product_price="$45,000",
            product_mrp="50000.456",
            track_inventory="no",
            product_stock="50.7",
            status=" Draft ",
            variant_title="1000kg",
            variant_sku="VVVF-1000",
            variant_option_1_name="Capacity",
            variant_option_1_value="1000kg",
            variant_option_2_name="Voltage",
            variant_option_2_value="",
            variant_price="46000",
            variant_stock="5",
            attributes='{"speed": "1.5 m/s"}',
        )])

        row = parse_product_csv(text)[0]

        assert row.product_title == "VVVF Elevator Motor"
        assert row.description == "Long description"
        assert row.subcategory_slug == "vvvf-motors"
        assert row.elevator_types == ["passenger", "commercial"]
        assert row.collections == ["featured"]
        assert row.product_price == Decimal("45000.00")
        assert row.product_mrp == Decimal("50000.456")
        assert row.track_inventory is False
        assert row.product_stock == 50
        assert row.status == "draft"
        assert row.variant_title == "1000kg"
        assert row.variant_sku == "VVVF-1000"
        assert row.variant_options == [("Capacity", "1000kg")]
        assert row.variant_price == Decimal("46000.00")
        assert row.variant_mrp is None
        assert row.variant_stock == 5
        assert row.attributes == {"speed": "1.5 m/s"}

    def test_optional_fields_absent(self):
        row = parse_product_csv(build_csv([ImportRowFactory.create()]))[0]

        assert row.subcategory_slug is None
        assert row.elevator_types == []
        assert row.collections == []
        assert row.track_inventory is None
        assert row.product_stock is None
        assert row.status is None
        assert row.variant_title is None
        assert row.variant_options == []
        assert row.attributes is None

    def test_invalid_values_keep_raw_text(self):
        row = parse_product_csv(build_csv([ImportRowFactory.create(
            product_price="abc",
            attributes="{not json",
        )]))[0]

        assert row.product_price is None
        assert row.raw_value("product_price") == "abc"
        assert row.attributes is None
        assert row.raw_value("attributes") == "{not json"

    def test_read_raw_rows_returns_strings(self):
        raw = read_raw_rows(build_csv([ImportRowFactory.create(product_price="100")]))

        row_number, values = raw[0]
        assert row_number == 2
        assert values["product_price"] == "100"


# ===================
# VALUE HELPERS
# ===================

class TestValueHelpers:

    @pytest.mark.parametrize("value,expected", [
        ("45000", Decimal("45000.00")),
        ("1,200.50", Decimal("1200.50")),
        ("$99.999", Decimal("99.999")),
        ("0.004", Decimal("0.004")),
        ("1e30", Decimal("1e30")),
        ("₹ 2500", Decimal("2500.00")),
        ("-5", Decimal("-5.00")),
        ("0", Decimal("0.00")),
    ])
    def test_parse_decimal(self, value, expected):
        assert _parse_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, "", "  ", "abc", "NaN", "Infinity", "12abc"])
    def test_parse_decimal_invalid(self, value):
        assert _parse_decimal(value) is None

    @pytest.mark.parametrize("value,expected", [
        ("50", 50),
        ("50.7", 50),
        ("1,000", 1000),
        ("abc", None),
        ("", None),
    ])
    def test_parse_int(self, value, expected):
        assert _parse_int(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("true", True),
        ("TRUE", True),
        ("yes", True),
        ("1", True),
        ("false", False),
        ("No", False),
        ("0", False),
        ("maybe", None),
        ("", None),
    ])
    def test_parse_bool(self, value, expected):
        assert _parse_bool(value) is expected

    def test_parse_attributes_object(self):
        assert _parse_attributes('{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("value", ["[1, 2]", '"text"', "{bad", "", None])
    def test_parse_attributes_rejects_non_objects(self, value):
        assert _parse_attributes(value) is None
