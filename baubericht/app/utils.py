import json
import re
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError, field_validator


def clean_json_string(s: str) -> str:
    s = s.strip()
    if s.startswith("```json"):
        s = s[7:]
    elif s.startswith("```"):
        s = s[3:]
    if s.endswith("```"):
        s = s[:-3]
    return s.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the outermost ``{...}`` block of an LLM answer, if any."""
    cleaned = clean_json_string(text or "")
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    return cleaned[start : end + 1]


class SectionsPayload(BaseModel):
    """External three-bucket classification; malformed fields become empty lists."""

    leistungen: List[str] = []
    arbeitskraefte: List[str] = []
    material: List[str] = []

    @field_validator("leistungen", "arbeitskraefte", "material", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple)):
            return []
        items: List[str] = []
        for item in value:
            if isinstance(item, bool) or not isinstance(item, (str, int, float)):
                continue
            text = re.sub(r"\s+", " ", str(item)).strip()
            if text:
                items.append(text)
        return items


def parse_sections_payload(raw: Any) -> Optional[SectionsPayload]:
    """Coerce a dict, JSON text or payload into :class:`SectionsPayload`.

    Returns ``None`` for anything that is not a JSON object.
    """
    if raw is None:
        return None
    if isinstance(raw, SectionsPayload):
        return raw
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        block = extract_json_object(text)
        if block is None:
            return None
        try:
            raw = json.loads(block)
        except json.JSONDecodeError:
            return None
    if hasattr(raw, "to_dict") and not isinstance(raw, dict):
        raw = raw.to_dict()
    if not isinstance(raw, dict):
        return None
    try:
        return SectionsPayload.model_validate(raw)
    except ValidationError:
        return None
