"""Report service layer shared by the FastAPI handlers and the CLI.

Combines the optional LLM classification, reconciliation, worker/material
parsing and template layout behind two keyword-only entry points.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from baubericht.app.error_messages import overflow_message, report_summary_message
from baubericht.app.layout import (
    REPORT_TYPES,
    build_report_layout,
    materials_from_sections,
    workers_from_sections,
)
from baubericht.app.llm import classify_report_lines
from baubericht.app.models import NormalizedSections
from baubericht.app.reconcile import normalize_report_sections


class ServiceError(Exception):
    """Domain specific error that can be translated to HTTP responses."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class ReportServiceContext:
    classifier_chain: Any | None = None
    use_llm_default: bool = True
    skip_llm_setup: bool = False
    logger: Any | None = None
    debug: bool = False

    def get_logger(self) -> logging.Logger:
        return self.logger or logging.getLogger("baubericht")


def _clean_lines(lines: Any) -> List[str]:
    if lines is None:
        return []
    if isinstance(lines, str):
        return [line for line in lines.splitlines() if line.strip()]
    if not isinstance(lines, (list, tuple)):
        raise ServiceError("lines muss eine Liste von Zeilen sein", status_code=400)
    return [str(line) for line in lines if line is not None and str(line).strip()]


def _external_sections(
    lines: Sequence[str],
    sections: Any,
    use_llm: Optional[bool],
    ctx: ReportServiceContext,
) -> Any:
    if sections is not None:
        return sections
    wanted = ctx.use_llm_default if use_llm is None else use_llm
    if not wanted or not lines:
        return None
    if ctx.skip_llm_setup or ctx.classifier_chain is None:
        if use_llm:
            ctx.get_logger().info("LLM classification requested but disabled; using heuristics only")
        return None
    return classify_report_lines(ctx.classifier_chain, lines)


def normalize_lines(
    *,
    lines: Any,
    sections: Any = None,
    use_llm: Optional[bool] = None,
    ctx: ReportServiceContext,
) -> tuple[NormalizedSections, bool]:
    cleaned = _clean_lines(lines)
    external = _external_sections(cleaned, sections, use_llm, ctx)
    normalized = normalize_report_sections(cleaned, external)
    if ctx.debug:
        ctx.get_logger().info("Normalized %d line(s): %s", len(cleaned), normalized.to_dict())
    return normalized, external is not None


def build_report_sections(
    *,
    lines: Any,
    sections: Any = None,
    use_llm: Optional[bool] = None,
    ctx: ReportServiceContext,
) -> Dict[str, Any]:
    normalized, external_used = normalize_lines(lines=lines, sections=sections, use_llm=use_llm, ctx=ctx)
    return {
        "sections": normalized.to_dict(),
        "workers": [worker.to_dict() for worker in workers_from_sections(normalized)],
        "materials": [entry.to_dict() for entry in materials_from_sections(normalized)],
        "external_classification": external_used,
        "message": report_summary_message(normalized),
    }


def render_report_layout(
    *,
    report_type: str,
    lines: Any,
    sections: Any = None,
    use_llm: Optional[bool] = None,
    ctx: ReportServiceContext,
) -> Dict[str, Any]:
    kind = (report_type or "").strip().upper()
    if kind not in REPORT_TYPES:
        raise ServiceError(
            f"Unbekannter Berichtstyp '{report_type}'. Erlaubt: {', '.join(REPORT_TYPES)}",
            status_code=400,
        )
    normalized, external_used = normalize_lines(lines=lines, sections=sections, use_llm=use_llm, ctx=ctx)
    layout = build_report_layout(kind, normalized)
    message = overflow_message(layout.overflow) or report_summary_message(normalized)
    if layout.has_overflow:
        ctx.get_logger().info("Report %s overflow: %s", kind, layout.overflow)
    payload = layout.to_dict()
    payload.update(
        sections=normalized.to_dict(),
        external_classification=external_used,
        message=message,
    )
    return payload
