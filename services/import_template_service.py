"""
CSV downloads for the product import: the blank template with example
rows, and the error report for a session.
"""

from io import StringIO
from typing import TYPE_CHECKING
import structlog

import pandas as pd

from models.product_import import GroupOutcome

if TYPE_CHECKING:
    from services.import_pipeline_service import ImportSession

logger = structlog.get_logger(__name__)

TEMPLATE_FILENAME = "product-import-template.csv"
ERROR_REPORT_FILENAME = "import-errors.csv"

TEMPLATE_COLUMNS = [
    # Product-level fields
    "product_title",
    "short_description",
    "brief_description",
    "application_slug",
    "category_slug",
    "subcategory_slug",
    "elevator_types",
    "collections",
    "product_price",
    "product_mrp",
    "track_inventory",
    "product_stock",
    "status",
    # Variant-level fields
    "variant_title",
    "variant_sku",
    "variant_option_1_name",
    "variant_option_1_value",
    "variant_option_2_name",
    "variant_option_2_value",
    "variant_price",
    "variant_mrp",
    "variant_stock",
    # Metadata
    "attributes",
]

ERROR_REPORT_COLUMNS = ["row", "product_title", "field", "severity", "message"]

_MOTOR = {
    "product_title": "VVVF Elevator Motor",
    "short_description": "High-efficiency VVVF motor for passenger elevators",
    "brief_description": (
        "Variable Voltage Variable Frequency (VVVF) motor with advanced control "
        "system for smooth operation and energy efficiency."
    ),
    "application_slug": "motors",
    "category_slug": "traction-motors",
    "subcategory_slug": "vvvf-motors",
    "elevator_types": "passenger,commercial",
    "collections": "featured,best-sellers",
    "product_price": "45000",
    "product_mrp": "50000",
    "track_inventory": "true",
    "product_stock": "50",
    "status": "active",
    "variant_option_1_name": "Capacity",
    "variant_option_2_name": "Voltage",
    "variant_option_2_value": "415V",
    "attributes": '{"controller":"VVVF","speed":"1.5 m/s","efficiency":"95%"}',
}

_GUIDE_RAIL = {
    "product_title": "Elevator Guide Rail",
    "short_description": "T-type guide rails for smooth elevator travel",
    "brief_description": (
        "High-strength T-type guide rails manufactured from cold-drawn steel. "
        "Ensures smooth and stable elevator cabin movement."
    ),
    "application_slug": "mechanical-components",
    "category_slug": "guide-rails",
    "subcategory_slug": "t-type-rails",
    "elevator_types": "passenger,freight",
    "collections": "new-arrivals",
    "product_price": "8000",
    "product_mrp": "9000",
    "track_inventory": "true",
    "product_stock": "100",
    "status": "active",
    "variant_option_1_name": "Length",
    "attributes": '{"material":"Cold-drawn steel","weight_per_meter":"24kg"}',
}

TEMPLATE_EXAMPLES = [
    # Product with two variants (capacity + voltage)
    {
        **_MOTOR,
        "variant_title": "1000kg / 415V",
        "variant_sku": "VVVF-1000-415",
        "variant_option_1_value": "1000kg",
        "variant_price": "45000",
        "variant_mrp": "50000",
        "variant_stock": "50",
    },
    {
        **_MOTOR,
        "variant_title": "1500kg / 415V",
        "variant_sku": "VVVF-1500-415",
        "variant_option_1_value": "1500kg",
        "variant_price": "48000",
        "variant_mrp": "53000",
        "variant_stock": "30",
    },
    # Simple product, no variant columns
    {
        "product_title": "Elevator Door Sensor",
        "short_description": "Infrared safety sensor for elevator doors",
        "brief_description": (
            "High-precision infrared sensor with 10mm detection range. Ensures "
            "passenger safety by preventing door closure when obstruction detected."
        ),
        "application_slug": "safety-devices",
        "category_slug": "sensors",
        "subcategory_slug": "door-sensors",
        "elevator_types": "passenger,commercial,residential",
        "product_price": "2500",
        "product_mrp": "3000",
        "track_inventory": "true",
        "product_stock": "200",
        "status": "active",
        "attributes": '{"detection_range":"10mm","response_time":"20ms","voltage":"24V DC"}',
    },
    # Single option (length)
    {
        **_GUIDE_RAIL,
        "variant_title": "5 meters",
        "variant_option_1_value": "5m",
        "variant_price": "8000",
        "variant_mrp": "9000",
        "variant_stock": "100",
    },
    {
        **_GUIDE_RAIL,
        "variant_title": "10 meters",
        "variant_option_1_value": "10m",
        "variant_price": "15000",
        "variant_mrp": "17000",
        "variant_stock": "50",
    },
]


def build_template_csv() -> str:
    """Template header plus example rows, as CSV text."""
    df = pd.DataFrame(TEMPLATE_EXAMPLES, columns=TEMPLATE_COLUMNS).fillna("")
    return df.to_csv(index=False)


def build_error_report_csv(session: "ImportSession") -> str:
    """
    Every issue in a session, plus failed groups once executed, as CSV text.

    File-level issues have no product_title; resolver issues have no row.
    """
    records = []

    if session.preview is not None:
        for issue in session.preview.file_issues:
            records.append({
                "row": issue.row,
                "product_title": "",
                "field": issue.field,
                "severity": issue.severity.value,
                "message": issue.message,
            })
        for decision in session.preview.decisions:
            for issue in decision.issues:
                records.append({
                    "row": issue.row,
                    "product_title": decision.group.title,
                    "field": issue.field,
                    "severity": issue.severity.value,
                    "message": issue.message,
                })

    if session.summary is not None:
        for result in session.summary.results:
            if result.outcome == GroupOutcome.FAILED:
                records.append({
                    "row": None,
                    "product_title": result.title,
                    "field": "import",
                    "severity": "failed",
                    "message": result.error or "Import failed",
                })

    df = pd.DataFrame(records, columns=ERROR_REPORT_COLUMNS)
    # Keep row numbers integral when some are missing
    df["row"] = df["row"].astype("Int64")

    logger.info("error_report_built", session_id=session.id, rows=len(df))
    return df.to_csv(index=False)
