"""
Pydantic settings models for the atomic knowledge graph.

Defaults keep traversals and snapshots small enough to answer an
interactive request in well under a second on a single SQLite file.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class StorageSettings(BaseModel):
    """SQLite storage configuration."""

    database_path: Path = Field(
        default=Path("data/knowledge.db"),
        description="Path to SQLite database file",
    )
    wal_mode: bool = Field(
        default=True,
        description="Enable WAL mode so readers do not block the writer",
    )
    cache_size_mb: int = Field(
        default=64,
        ge=8,
        le=512,
        description="SQLite cache size in megabytes",
    )

    @field_validator("database_path", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(v) if isinstance(v, str) else v


class TraversalSettings(BaseModel):
    """Defaults and bounds for branch traversal requests."""

    default_depth: int = Field(
        default=2,
        ge=1,
        le=4,
        description="Depth used when a request does not specify one",
    )
    default_direction: Literal["out", "in", "both"] = Field(
        default="out",
        description="Direction used when a request does not specify one",
    )
    default_limit_per_node: int = Field(
        default=12,
        ge=1,
        le=100,
        description="Fan-out cap used when a request does not specify one",
    )
    max_limit_per_node: int = Field(
        default=25,
        ge=1,
        le=100,
        description="Requested fan-out caps above this value are clamped",
    )

    @model_validator(mode="after")
    def check_limits(self) -> "TraversalSettings":
        """The default fan-out cap may not exceed the maximum."""
        if self.default_limit_per_node > self.max_limit_per_node:
            raise ValueError(
                "default_limit_per_node must not exceed max_limit_per_node")
        return self


class GraphSettings(BaseModel):
    """In-memory snapshot configuration."""

    snapshot_unit_limit: int = Field(
        default=500,
        ge=1,
        le=20000,
        description="Maximum units loaded into a snapshot window",
    )
    default_max_hops: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Neighborhood radius used when a request does not specify one",
    )


class DetectionSettings(BaseModel):
    """Keyword-similarity auto-detection configuration."""

    similarity_threshold: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Minimum Jaccard score for a candidate relationship",
    )
    max_units: int = Field(
        default=200,
        ge=2,
        le=5000,
        description="Largest unit window accepted (detection is quadratic)",
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum logging level",
    )
    format: str = Field(
        default="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        description="Log message format string",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Date format for log timestamps",
    )
    file_path: Path | None = Field(
        default=None,
        description="Path to log file. None means console only.",
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum log file size before rotation",
    )
    backup_count: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Number of backup log files to keep",
    )
    log_to_console: bool = Field(
        default=True,
        description="Whether to output logs to the console",
    )

    @field_validator("file_path", mode="before")
    @classmethod
    def convert_file_path(cls, v: str | Path | None) -> Path | None:
        """Convert string paths to Path objects."""
        if v is None:
            return None
        return Path(v) if isinstance(v, str) else v


class Settings(BaseModel):
    """
    Root configuration model containing all subsystem settings.

    Settings are loaded from YAML with environment variable overrides.
    """

    storage: StorageSettings = Field(
        default_factory=StorageSettings,
        description="Database storage settings",
    )
    traversal: TraversalSettings = Field(
        default_factory=TraversalSettings,
        description="Branch traversal defaults",
    )
    graph: GraphSettings = Field(
        default_factory=GraphSettings,
        description="Snapshot graph settings",
    )
    detection: DetectionSettings = Field(
        default_factory=DetectionSettings,
        description="Relationship auto-detection settings",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    model_config = {
        "extra": "forbid",
        "validate_default": True,
    }
