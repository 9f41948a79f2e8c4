"""
Data models for knowledge units.

Units are owned by the unit store; the graph engine reads them and
never writes them back.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from atomic_graph.core.exceptions import StorageError


class UnitType(str, Enum):
    """Kind of knowledge a unit holds."""

    INSIGHT = "insight"
    CODE = "code"
    QUESTION = "question"
    REFERENCE = "reference"
    DECISION = "decision"


UNKNOWN_UNIT_TYPE = "unknown"


@dataclass(frozen=True)
class UnitSummary:
    """
    Minimal view of a unit used in traversal output.

    type is a plain string so that placeholder summaries for dangling
    relationship endpoints can report "unknown".
    """

    id: str
    title: str
    type: str
    category: str

    @classmethod
    def placeholder(cls, unit_id: str) -> "UnitSummary":
        """Summary for an id that the unit store cannot resolve."""
        return cls(id=unit_id, title=unit_id, type=UNKNOWN_UNIT_TYPE, category="")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "category": self.category,
        }


@dataclass
class KnowledgeUnit:
    """
    A stored knowledge unit (note, snippet, decision, reference).

    Keywords feed relationship auto-detection; everything else is
    carried through to graph output untouched.
    """

    id: str
    title: str
    type: UnitType = UnitType.INSIGHT
    category: str = ""
    keywords: list[str] = field(default_factory=list)
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, UnitType):
            self.type = UnitType(self.type)
        if self.keywords is None:
            self.keywords = []

    def summary(self) -> UnitSummary:
        return UnitSummary(
            id=self.id,
            title=self.title,
            type=self.type.value,
            category=self.category,
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "category": self.category,
            "keywords": list(self.keywords),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def to_row(self) -> dict:
        """Convert to column values for the atomic_units table."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "category": self.category,
            "keywords": json.dumps(list(self.keywords)),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    @classmethod
    def from_row(cls, row: dict) -> "KnowledgeUnit":
        """Create from database row."""
        return cls(
            id=row["id"],
            title=row.get("title") or "",
            type=_parse_unit_type(row["id"], row.get("type")),
            category=row.get("category") or "",
            keywords=_parse_keywords(row.get("keywords")),
            timestamp=parse_datetime(row.get("timestamp")),
        )


@dataclass
class UnitFilter:
    """Filter for listing units when building a snapshot window."""

    type: UnitType | None = None
    category: str | None = None


def _parse_unit_type(unit_id: str, value: Any) -> UnitType:
    if not value:
        return UnitType.INSIGHT
    try:
        return UnitType(value)
    except ValueError:
        raise StorageError(
            f"Unit {unit_id!r} has unknown type {value!r}",
            details={"unit_id": unit_id, "type": value},
        ) from None


def _parse_keywords(value: Any) -> list[str]:
    """Decode the stored keyword list, tolerating legacy comma-separated text."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(k) for k in value]
    try:
        decoded = json.loads(value)
    except (TypeError, ValueError):
        return [k.strip() for k in str(value).split(",") if k.strip()]
    if isinstance(decoded, list):
        return [str(k) for k in decoded]
    return []


def parse_datetime(value: Any) -> datetime | None:
    """Parse a datetime from a database value."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
