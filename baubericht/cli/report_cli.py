from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from baubericht.app.services.report_service import (
    ReportServiceContext,
    ServiceError,
    build_report_sections,
    render_report_layout,
)


class CLIError(Exception):
    """Raised when user input is invalid."""


def _read_lines(source: str, stdin: TextIO) -> List[str]:
    if source == "-":
        text = stdin.read()
    else:
        path = Path(source)
        if not path.exists():
            raise CLIError(f"File not found: {path}")
        text = path.read_text(encoding="utf-8")
    return [line for line in text.splitlines() if line.strip()]


def _read_sections(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if not value:
        return None
    path = Path(value)
    text = path.read_text(encoding="utf-8") if path.suffix == ".json" and path.exists() else value
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CLIError(f"--sections is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise CLIError("--sections must be a JSON object with leistungen/arbeitskraefte/material.")
    return data


def _build_context(use_llm: bool) -> ReportServiceContext:
    if not use_llm:
        return ReportServiceContext(use_llm_default=False, skip_llm_setup=True)
    from baubericht.app.llm import classifier_chain_from_env

    try:
        chain = classifier_chain_from_env()
    except ValueError as exc:
        raise CLIError(str(exc)) from exc
    return ReportServiceContext(classifier_chain=chain, use_llm_default=True)


def _format_sections_text(result: Dict[str, Any]) -> str:
    labels = (("leistungen", "Leistungen"), ("arbeitskraefte", "Arbeitskräfte"), ("material", "Material"))
    blocks: List[str] = []
    for key, label in labels:
        items = result["sections"].get(key) or []
        body = "\n".join(f"- {item}" for item in items) if items else "- (keine)"
        blocks.append(f"{label}:\n{body}")
    return "\n\n".join(blocks)


def _format_layout_text(result: Dict[str, Any]) -> str:
    lines = [f"Berichtstyp: {result['report_type']}"]
    for cell, value in result["cells"].items():
        if value != "":
            lines.append(f"{cell}: {value}")
    overflow = result.get("overflow") or {}
    if any(overflow.values()):
        lines.append("")
        lines.append(result["message"])
    return "\n".join(lines)


def cmd_normalize(args: argparse.Namespace, stdin: TextIO, stdout: TextIO) -> None:
    result = build_report_sections(
        lines=_read_lines(args.path, stdin),
        sections=_read_sections(args.sections),
        use_llm=args.llm,
        ctx=_build_context(args.llm),
    )
    if args.format == "json":
        print(json.dumps(result, ensure_ascii=False, indent=2), file=stdout)
    else:
        print(_format_sections_text(result), file=stdout)


def cmd_layout(args: argparse.Namespace, stdin: TextIO, stdout: TextIO) -> None:
    try:
        result = render_report_layout(
            report_type=args.type,
            lines=_read_lines(args.path, stdin),
            sections=_read_sections(args.sections),
            use_llm=args.llm,
            ctx=_build_context(args.llm),
        )
    except ServiceError as exc:
        raise CLIError(exc.message) from exc
    if args.format == "json":
        print(json.dumps(result, ensure_ascii=False, indent=2), file=stdout)
    else:
        print(_format_layout_text(result), file=stdout)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", help="Text file with one report line per line, or '-' for stdin.")
    parser.add_argument("--sections", default=None, help="External classification as JSON text or .json file.")
    parser.add_argument("--llm", action="store_true", default=False, help="Classify with the configured LLM first.")
    parser.add_argument("--format", choices=("json", "text"), default="json")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Normalize construction-site report lines.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    normalize = subparsers.add_parser("normalize", help="Split lines into Leistungen/Arbeitskräfte/Material.")
    _add_common_arguments(normalize)
    normalize.set_defaults(func=cmd_normalize)

    layout = subparsers.add_parser("layout", help="Compute template cells for RB or BTB.")
    layout.add_argument("--type", required=True, type=str.upper, choices=("RB", "BTB"))
    _add_common_arguments(layout)
    layout.set_defaults(func=cmd_layout)

    return parser


def main(
    argv: Optional[List[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args, stdin or sys.stdin, stdout or sys.stdout)
    except CLIError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
