"""
Product import from the command line.

Runs a local CSV through the same pipeline as the admin upload: preview
first, then (with --execute) writes the catalog.

Usage:
    # Preview only, nothing is written
    python scripts/import_products.py data/products.csv

    # Preview and import
    python scripts/import_products.py data/products.csv --execute

    # Write the blank template
    python scripts/import_products.py --template product-import-template.csv
"""

import argparse
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from exceptions import AppError
from services.import_pipeline_service import (
    ImportPipelineService,
    ImportSession,
    build_preview_response,
)
from services.import_template_service import TEMPLATE_FILENAME, build_template_csv
from services.upload_history_service import get_upload_history_service


def print_preview(session: ImportSession) -> None:
    preview = build_preview_response(session)

    print("=" * 60)
    print(f"PREVIEW: {session.filename}")
    print("=" * 60)
    print(f"Products: {preview.product_count}  Variants: {preview.variant_count}")
    print(
        f"Blocking: {preview.blocking_count}  Warnings: {preview.warning_count}  "
        f"Drafts: {preview.draft_count}"
    )

    for issue in preview.file_issues:
        print(f"  [{issue.severity.value}] {issue.field}: {issue.message}")

    for group in preview.groups:
        print(f"\n{group.title} ({group.variant_count} variants) - {group.status_label}")
        for issue in group.issues:
            where = f"row {issue.row}" if issue.row else "product"
            print(f"  [{issue.severity.value}] {where} {issue.field}: {issue.message}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Import products and variants from a CSV file")
    parser.add_argument("file", nargs="?", help="CSV file to import")
    parser.add_argument("--execute", action="store_true", help="Write the products after a clean preview")
    parser.add_argument(
        "--template",
        metavar="PATH",
        nargs="?",
        const=TEMPLATE_FILENAME,
        help="Write the import template and exit"
    )
    args = parser.parse_args()

    if args.template:
        with open(args.template, "w", encoding="utf-8", newline="") as f:
            f.write(build_template_csv())
        print(f"Template written to {args.template}")
        return 0

    if not args.file:
        parser.error("a CSV file is required unless --template is given")

    with open(args.file, "rb") as f:
        content = f.read()

    service = ImportPipelineService(history=get_upload_history_service())

    try:
        session = service.preview_upload(content, filename=os.path.basename(args.file))
    except AppError as e:
        print(f"ERROR [{e.code}]: {e.message}")
        return 1

    print_preview(session)

    if not session.preview.can_confirm:
        print(f"\n{session.preview.blocking_count} blocking issues. Fix the file and try again.")
        return 1

    if not args.execute:
        print("\nPreview only. Re-run with --execute to import.")
        return 0

    service.confirm(session)
    summary = service.execute(session)

    print("\n" + "=" * 60)
    print(summary.message)
    for result in summary.results:
        if result.error:
            print(f"  FAILED {result.title}: {result.error}")

    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
