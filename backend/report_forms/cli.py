"""
Command line entry point (console script `report-forms`)

Usage:
  report-forms render    --type tagesbericht --input report.json [--out out.pdf] [--id 42]
  report-forms sheet     --type pumpversuch --input protocol.json [--out out.xlsx]
  report-forms protocol  --type klarspuel_pdf --input protocol.json [--out out.pdf]
  report-forms meta      --type tagesbericht | --file some.pdf
  report-forms calibrate --type tagesbericht [--grid 25] [--marker 100,200,date] [--input report.json]

Global options (before the command): --config runtime.yaml, --log-level DEBUG
Exit codes: 0 ok, 1 render failure, 2 bad input.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .config import RuntimeConfig, get_config, reload_config
from .doc_gen import TemplateProbe
from .interfaces import ReportFormsError
from .models import CalibrationMarker, DocumentType
from .pipeline import RenderService

logger = logging.getLogger(__name__)

PDF_REPORT_TYPES = [DocumentType.TAGESBERICHT.value, DocumentType.TAGESBERICHT_RML.value]
SHEET_TYPES = [t.value for t in DocumentType if t.is_sheet]
PROTOCOL_PDF_TYPES = [t.value for t in DocumentType if t.is_protocol_pdf]
PROBE_TYPES = PDF_REPORT_TYPES + PROTOCOL_PDF_TYPES


def setup_logging(config: RuntimeConfig, level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or config.logging.log_level).upper(),
        format=config.logging.log_format,
        force=True,
    )


def read_json(path: str | None) -> dict[str, Any] | None:
    """Payload file ("-" reads stdin); None when no path is given"""
    if not path:
        return None
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("payload must be a JSON object")
    return data


def parse_marker(text: str) -> CalibrationMarker:
    """ "x,y" or "x,y,label" """
    parts = text.split(",", 2)
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(f"marker must be x,y[,label]: {text!r}")
    try:
        x, y = float(parts[0]), float(parts[1])
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"marker coordinates must be numbers: {text!r}") from e
    return CalibrationMarker(x=x, y=y, label=parts[2] if len(parts) > 2 else "")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="report-forms", description="Render reports onto fixed PDF/XLSX templates.")
    ap.add_argument("--config", default="", help="runtime YAML (default: config/report_forms.yaml)")
    ap.add_argument("--log-level", default="", help="overrides logging.log_level")
    sub = ap.add_subparsers(dest="command", required=True)

    for name, choices, help_text in (
        ("render", PDF_REPORT_TYPES, "render a daily report PDF"),
        ("sheet", SHEET_TYPES, "fill a measurement protocol workbook"),
        ("protocol", PROTOCOL_PDF_TYPES, "render a measurement protocol PDF"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--type", required=True, choices=choices, dest="doc_type")
        p.add_argument("--input", required=True, help="JSON payload file, - for stdin")
        p.add_argument("--out", default="", help="output file (default: proposed file name)")
        p.add_argument("--id", default=None, dest="record_id", help="record id for the file name")

    p = sub.add_parser("meta", help="print template page sizes as JSON")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--type", choices=PROBE_TYPES, dest="doc_type")
    group.add_argument("--file", default=None)

    p = sub.add_parser("calibrate", help="render the template with grid and markers")
    p.add_argument("--type", required=True, choices=PROBE_TYPES, dest="doc_type")
    p.add_argument("--grid", type=float, default=25.0, help="grid step in points, 0 disables the grid")
    p.add_argument("--marker", type=parse_marker, action="append", default=[], help="x,y[,label] in the layout origin")
    p.add_argument("--input", default=None, help="optional record drawn under the grid")
    p.add_argument("--out", default="calibration.pdf")

    return ap


def _cmd_render(args: argparse.Namespace, config: RuntimeConfig) -> int:
    payload = read_json(args.input)
    outcome = RenderService(config).render(args.doc_type, payload, record_id=args.record_id)
    if not outcome.ok:
        print(f"error [{outcome.error_code}]: {outcome.message}", file=sys.stderr)
        return 1

    out = Path(args.out or outcome.file_name)
    out.write_bytes(outcome.content)
    pages = f", {outcome.page_count} page(s)" if outcome.page_count is not None else ""
    print(f"{out}{pages}")
    return 0


def _cmd_meta(args: argparse.Namespace, config: RuntimeConfig) -> int:
    probe = TemplateProbe(config)
    infos = probe.describe_file(Path(args.file)) if args.file else probe.describe(args.doc_type)
    print(json.dumps([info.model_dump() for info in infos], indent=2, ensure_ascii=False))
    return 0


def _cmd_calibrate(args: argparse.Namespace, config: RuntimeConfig) -> int:
    record = read_json(args.input)
    data = TemplateProbe(config).calibrate(args.doc_type, args.grid, args.marker, record)
    out = Path(args.out)
    out.write_bytes(data)
    print(out)
    return 0


COMMANDS = {
    "render": _cmd_render,
    "sheet": _cmd_render,
    "protocol": _cmd_render,
    "meta": _cmd_meta,
    "calibrate": _cmd_calibrate,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = reload_config(args.config) if args.config else get_config()
    setup_logging(config, args.log_level or None)

    logger.debug(f"Command {args.command}, layouts {config.layout_path}, templates {config.templates_dir}")

    try:
        return COMMANDS[args.command](args, config)
    except ReportFormsError as e:
        # checked first: TemplateNotFoundError is also an OSError
        print(f"error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        # unreadable or malformed input file
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
