"""
Relationship model types.

A relationship is a directed, typed edge between two unit ids. Edges
refer to units by id only, so cyclic graphs never form object cycles.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from atomic_graph.core.exceptions import InvalidParameterError
from atomic_graph.storage.models import parse_datetime
from atomic_graph.utils.logging import get_logger

logger = get_logger(__name__)


class RelationshipType(str, Enum):
    """Known relationship vocabulary."""

    RELATED = "related"
    PREREQUISITE = "prerequisite"
    EXPANDS_ON = "expands_on"
    CONTRADICTS = "contradicts"
    IMPLEMENTS = "implements"
    BUILDS_ON = "builds_on"
    REFERENCES = "references"

    def __str__(self) -> str:
        return self.value


class OtherRelationship(str):
    """
    A relationship token outside the known vocabulary.

    Rows written by newer clients keep their type instead of failing
    to load. Behaves as the raw token string for ordering and equality.
    """

    @property
    def value(self) -> str:
        return str(self)

    def __repr__(self) -> str:
        return f"OtherRelationship({str(self)!r})"


RelationType = Union[RelationshipType, OtherRelationship]


def _normalize_token(token: str) -> str:
    return token.strip().lower().replace("-", "_").replace(" ", "_")


def parse_relationship_type(token: "str | RelationType", strict: bool = False) -> RelationType:
    """
    Resolve a relationship type token.

    Known types match after normalizing case, surrounding whitespace
    and hyphens, so "Expands-On" resolves to RelationshipType.EXPANDS_ON.
    Unknown tokens are kept exactly as given.

    Args:
        token: Raw token from a request or a caller
        strict: Reject tokens outside the known vocabulary

    Raises:
        InvalidParameterError: For blank tokens, and for unknown tokens
            when strict is set
    """
    if isinstance(token, (RelationshipType, OtherRelationship)):
        return token

    raw = "" if token is None else str(token)
    try:
        return RelationshipType(_normalize_token(raw))
    except ValueError:
        pass

    if strict or not raw.strip():
        raise InvalidParameterError(
            f"Unknown relationship type: {token!r}",
            parameter="relationshipType",
            value=token,
        )
    return OtherRelationship(raw)


def stored_relationship_type(value: str | None) -> RelationType:
    """
    Resolve a relationship type column value without normalizing it.

    Only exact known tokens map to RelationshipType; anything else is
    wrapped verbatim so the edge keeps the key it is stored under.
    """
    raw = "" if value is None else str(value)
    try:
        return RelationshipType(raw)
    except ValueError:
        return OtherRelationship(raw)


def stored_confidence(value: Any) -> float | None:
    """Read a confidence column value; unreadable or out of range values count as missing."""
    if value is None:
        return None
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        confidence = None
    if confidence is None or not 0.0 <= confidence <= 1.0:
        logger.warning(f"Ignoring stored confidence outside [0, 1]: {value!r}")
        return None
    return confidence


class RelationshipSource(str, Enum):
    """How a relationship came to exist."""

    MANUAL = "manual"
    AUTO_DETECTED = "auto_detected"

    @classmethod
    def from_value(cls, value: str | None) -> "RelationshipSource":
        """Read a stored source; missing and legacy values count as auto-detected."""
        if value == cls.MANUAL.value:
            return cls.MANUAL
        return cls.AUTO_DETECTED


class EdgeDirection(str, Enum):
    """Direction of an edge relative to the unit it was reached from."""

    OUT = "out"
    IN = "in"


class BranchDirection(str, Enum):
    """Which edges a branch traversal follows."""

    OUT = "out"
    IN = "in"
    BOTH = "both"

    @classmethod
    def parse(cls, token: "str | BranchDirection") -> "BranchDirection":
        if isinstance(token, BranchDirection):
            return token
        try:
            return cls(str(token).strip().lower())
        except ValueError:
            raise InvalidParameterError(
                f"Unknown direction: {token!r} (expected out, in or both)",
                parameter="direction",
                value=token,
            ) from None


@dataclass(frozen=True)
class RelationshipEdge:
    """
    Directed, typed relationship between two units.

    (from_id, to_id, relationship_type) identifies the edge; storing
    an edge with an existing key replaces the earlier one.
    """

    from_id: str
    to_id: str
    relationship_type: RelationType = RelationshipType.RELATED
    source: RelationshipSource = RelationshipSource.MANUAL
    confidence: float | None = None
    explanation: str | None = None
    created_at: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.relationship_type, (RelationshipType, OtherRelationship)):
            object.__setattr__(
                self,
                "relationship_type",
                parse_relationship_type(self.relationship_type),
            )
        if not isinstance(self.source, RelationshipSource):
            object.__setattr__(self, "source", RelationshipSource(self.source))
        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise InvalidParameterError(
                f"Confidence must be within [0, 1], got {self.confidence}",
                parameter="confidence",
                value=self.confidence,
            )

    @property
    def key(self) -> tuple[str, str, str]:
        """Composite identity (from_id, to_id, relationship type token)."""
        return (self.from_id, self.to_id, self.relationship_type.value)

    def with_created_at(self, created_at: datetime) -> "RelationshipEdge":
        return replace(self, created_at=created_at)

    def to_dict(self) -> dict:
        """Convert to the camelCase wire shape."""
        return {
            "fromUnitId": self.from_id,
            "toUnitId": self.to_id,
            "relationshipType": self.relationship_type.value,
            "source": self.source.value,
            "confidence": self.confidence,
            "explanation": self.explanation,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def to_row(self) -> dict:
        """Convert to column values for the unit_relationships table."""
        return {
            "from_unit": self.from_id,
            "to_unit": self.to_id,
            "relationship_type": self.relationship_type.value,
            "source": self.source.value,
            "confidence": self.confidence,
            "explanation": self.explanation,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_row(cls, row: dict) -> "RelationshipEdge":
        """Create from database row."""
        return cls(
            from_id=row["from_unit"],
            to_id=row["to_unit"],
            relationship_type=stored_relationship_type(row["relationship_type"]),
            source=RelationshipSource.from_value(row.get("source")),
            confidence=stored_confidence(row.get("confidence")),
            explanation=row.get("explanation"),
            created_at=parse_datetime(row.get("created_at")),
        )


def sortable_timestamp(value: datetime | None) -> float:
    """
    Seconds since the epoch for ordering; missing timestamps sort oldest.

    Naive datetimes are taken as UTC.
    """
    if value is None:
        return float("-inf")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()
