"""Command-line interface for compliscan."""

import argparse
import json
import sys
from pathlib import Path

from compliscan import __version__
from compliscan.core import build_report, check_html, check_image, check_text
from compliscan.exceptions import CompliScanError
from compliscan.fields import FIELD_SCHEMAS


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="compliscan",
        description="Check product labels against the Legal Metrology checklist",
    )
    parser.add_argument("path", help="Path to recognized label text, an HTML page or an image")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--html", action="store_true", help="Treat the input as a product page")
    source.add_argument("--image", action="store_true", help="Run OCR on the input image first")
    parser.add_argument("--url", help="Page address, used to pick site-specific selectors")
    parser.add_argument("--ai", action="store_true", help="Clean up page fields with Gemini")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"compliscan {__version__}",
    )

    args = parser.parse_args(argv)

    try:
        if args.image:
            label = check_image(args.path)
        elif args.html:
            html = Path(args.path).read_text(encoding="utf-8", errors="replace")
            label = check_html(html, url=args.url, use_ai=args.ai or None)
        else:
            label = check_text(Path(args.path).read_text(encoding="utf-8", errors="replace"))
    except (OSError, CompliScanError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report = build_report(label)
    if args.json:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        _print_formatted(report)

    return 0


def _print_formatted(report: dict) -> None:
    """Print a report in human-readable format."""
    label = report["label"]
    confidences = label["_field_confidences"]

    print()
    print("  compliscan")
    print()

    for name, schema in FIELD_SCHEMAS.items():
        value = label.get(name.value) or "-"
        confidence = confidences.get(name.value)
        suffix = f"  ({confidence:.2f})" if confidence is not None and label.get(name.value) else ""
        print(f"  {schema.display_name + ':':<46} {value}{suffix}")

    print()
    print(f"  Score:  {label['compliance_score']}/100")
    print(f"  Status: {label['status']}")

    if label["violations"]:
        print()
        for violation in label["violations"]:
            print(f"  [{violation['severity']}] {violation['message']}")

    for message in report["missing"] + report["warnings"]:
        print(f"  ! {message}")

    print()


if __name__ == "__main__":
    sys.exit(main())
