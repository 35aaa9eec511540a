"""
Report API - Baustellenberichte normalisieren und Vorlagen-Zellen berechnen
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from baubericht.app.services.report_service import (
    ReportServiceContext,
    ServiceError,
    build_report_sections,
    render_report_layout,
)

logger = logging.getLogger("baubericht.report_api")

router = APIRouter(prefix="/api/report", tags=["report"])

_CONTEXT = ReportServiceContext(skip_llm_setup=True, use_llm_default=False)


def configure_report_api(ctx: ReportServiceContext) -> None:
    global _CONTEXT
    _CONTEXT = ctx


def get_report_context() -> ReportServiceContext:
    return _CONTEXT


# --- Models ---

class NormalizeRequest(BaseModel):
    lines: List[str] = Field(default_factory=list)
    sections: Optional[Dict[str, Any]] = None
    use_llm: Optional[bool] = None


class LayoutRequest(NormalizeRequest):
    report_type: str


# --- Endpoints ---

@router.post("/normalize")
def api_report_normalize(payload: NormalizeRequest):
    try:
        return build_report_sections(
            lines=payload.lines,
            sections=payload.sections,
            use_llm=payload.use_llm,
            ctx=_CONTEXT,
        )
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@router.post("/layout")
def api_report_layout(payload: LayoutRequest):
    try:
        return render_report_layout(
            report_type=payload.report_type,
            lines=payload.lines,
            sections=payload.sections,
            use_llm=payload.use_llm,
            ctx=_CONTEXT,
        )
    except ServiceError as exc:
        logger.info("Layout request rejected: %s", exc.message)
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
