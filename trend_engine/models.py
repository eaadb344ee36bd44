from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


def normalize_term(t: str) -> str:
    return " ".join(str(t).strip().lower().split())


def as_date(v: Any) -> date:
    return v if isinstance(v, date) else date.fromisoformat(str(v)[:10])


@dataclass
class TermRecord:
    first_seen: date
    last_seen: date
    appearances: int = 1
    source_prefix: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "firstSeen": self.first_seen.isoformat(),
            "lastSeen": self.last_seen.isoformat(),
            "appearances": self.appearances,
            "sourcePrefix": self.source_prefix,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TermRecord":
        return cls(
            first_seen=as_date(d["firstSeen"]),
            last_seen=as_date(d["lastSeen"]),
            appearances=int(d.get("appearances", 1)),
            source_prefix=str(d.get("sourcePrefix") or ""),
        )


@dataclass
class BreakoutRecord:
    term: str
    category: str
    first_seen: date
    last_seen: date
    appearances: int = 1
    value: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term": self.term,
            "category": self.category,
            "firstSeen": self.first_seen.isoformat(),
            "lastSeen": self.last_seen.isoformat(),
            "appearances": self.appearances,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BreakoutRecord":
        return cls(
            term=str(d["term"]),
            category=str(d.get("category") or ""),
            first_seen=as_date(d["firstSeen"]),
            last_seen=as_date(d["lastSeen"]),
            appearances=int(d.get("appearances", 1)),
            value=float(d.get("value") or 0.0),
        )


@dataclass
class ScanHistoryEntry:
    date: date
    new_terms: List[str] = field(default_factory=list)
    lost_terms: List[str] = field(default_factory=list)
    total_seen: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "newTerms": list(self.new_terms),
            "lostTerms": list(self.lost_terms),
            "totalSeen": self.total_seen,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScanHistoryEntry":
        return cls(
            date=as_date(d["date"]),
            new_terms=list(d.get("newTerms") or []),
            lost_terms=list(d.get("lostTerms") or []),
            total_seen=int(d.get("totalSeen") or 0),
        )


@dataclass
class RelatedQuery:
    term: str
    value: float
    is_breakout: bool
    category: str


@dataclass
class SeedSummary:
    term: str
    current_interest: Optional[float] = None
    change30: Optional[int] = None
    change60: Optional[int] = None
    change90: Optional[int] = None
    related_count: int = 0
    status: str = "fetched"  # fetched / no data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term": self.term,
            "currentInterest": self.current_interest,
            "change30": self.change30,
            "change60": self.change60,
            "change90": self.change90,
            "relatedCount": self.related_count,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SeedSummary":
        return cls(
            term=str(d["term"]),
            current_interest=d.get("currentInterest"),
            change30=d.get("change30"),
            change60=d.get("change60"),
            change90=d.get("change90"),
            related_count=int(d.get("relatedCount") or 0),
            status=str(d.get("status") or "fetched"),
        )


@dataclass
class TermView:
    term: str
    first_seen: date
    last_seen: date
    appearances: int
    source_prefix: str
    age_days: int
    consistency: int
    is_emerging: bool
    is_sustained: bool
    is_established: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term": self.term,
            "firstSeen": self.first_seen.isoformat(),
            "lastSeen": self.last_seen.isoformat(),
            "appearances": self.appearances,
            "sourcePrefix": self.source_prefix,
            "ageDays": self.age_days,
            "consistency": self.consistency,
            "isEmerging": self.is_emerging,
            "isSustained": self.is_sustained,
            "isEstablished": self.is_established,
        }
