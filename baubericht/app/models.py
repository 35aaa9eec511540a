"""Value types passed between the report pipeline stages."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SectionKind(str, Enum):
    SERVICES = "leistungen"
    WORKFORCE = "arbeitskraefte"
    MATERIAL = "material"


@dataclass(frozen=True)
class ClassifierState:
    """Section that unmarked fragments continue; ``None`` before the first fragment."""

    active: Optional[SectionKind] = None


@dataclass(frozen=True)
class ClassifiedFragment:
    kind: SectionKind
    text: str
    explicit: bool = False


@dataclass
class WorkerEntry:
    group: str
    name: str
    hours: Optional[float] = None
    no_aggregate: bool = False


@dataclass
class AggregatedWorker:
    name: str
    group: str
    hours: float = 0.0
    has_hours: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MaterialEntry:
    qty: str
    unit: str
    desc: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NormalizedSections:
    leistungen: List[str] = field(default_factory=list)
    arbeitskraefte: List[str] = field(default_factory=list)
    material: List[str] = field(default_factory=list)

    def bucket(self, kind: SectionKind) -> List[str]:
        return getattr(self, kind.value)

    def is_empty(self) -> bool:
        return not (self.leistungen or self.arbeitskraefte or self.material)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "leistungen": list(self.leistungen),
            "arbeitskraefte": list(self.arbeitskraefte),
            "material": list(self.material),
        }
