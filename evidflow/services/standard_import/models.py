"""Data models used by the standard import service."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from evidflow.core.errors import ReportInvariantError


class CanonicalField(str, Enum):
    """Stable field names expected by the rules and the standards store."""

    CODE = "code"
    NAME = "name"
    DESCRIPTION = "description"
    ORDER = "order"
    WEIGHT = "weight"
    OBJECTIVES = "objectives"
    GUIDELINES = "guidelines"
    STATUS = "status"
    UNMAPPED = "__unmapped__"

    @classmethod
    def record_fields(cls) -> tuple["CanonicalField", ...]:
        """All fields a record can carry, in template column order."""

        return tuple(member for member in cls if member is not cls.UNMAPPED)


def is_blank(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


@dataclass(frozen=True, slots=True)
class RawRow:
    """One data row of the source table, as presented by the decoder."""

    row_index: int
    cells: Tuple[Optional[str], ...]

    def is_blank(self) -> bool:
        return all(is_blank(cell) for cell in self.cells)


@dataclass(frozen=True, slots=True)
class FieldMapping:
    """Resolution of one source column onto a canonical field."""

    column: int
    header: str
    field: CanonicalField

    @property
    def is_mapped(self) -> bool:
        return self.field is not CanonicalField.UNMAPPED


@dataclass(frozen=True, slots=True)
class MappedRecord:
    """Fixed-shape record produced from a raw row; every field is optional."""

    row_index: int
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    order: Optional[str] = None
    weight: Optional[str] = None
    objectives: Optional[str] = None
    guidelines: Optional[str] = None
    status: Optional[str] = None

    def value(self, field_name: CanonicalField) -> Optional[str]:
        if field_name is CanonicalField.UNMAPPED:
            return None
        return getattr(self, field_name.value)

    def text(self, field_name: CanonicalField) -> Optional[str]:
        """Return the trimmed value, or ``None`` when blank."""

        raw = self.value(field_name)
        if is_blank(raw):
            return None
        return str(raw).strip()

    def as_dict(self) -> dict[str, Optional[str]]:
        return {f.value: self.value(f) for f in CanonicalField.record_fields()}


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A single broken rule on a single record field."""

    field: CanonicalField
    message: str
    row_index: int
    code: str


class ClassificationKind(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    DUPLICATE = "duplicate"


@dataclass(frozen=True, slots=True)
class Classification:
    """Pre-commit outcome for one record.

    ``duplicate_of`` is kept on invalid records too so both problems are
    reported, but ``kind`` gives invalid precedence.
    """

    record: MappedRecord
    kind: ClassificationKind
    issues: Tuple[ValidationIssue, ...] = ()
    duplicate_of: Optional[int] = None
    key: Optional[str] = None

    @property
    def row_index(self) -> int:
        return self.record.row_index

    @property
    def eligible(self) -> bool:
        return self.kind is ClassificationKind.VALID


class CommitStatus(str, Enum):
    COMMITTED = "committed"
    FAILED = "failed"
    NOT_PROCESSED = "not_processed"


@dataclass(frozen=True, slots=True)
class CommitOutcome:
    """Result of handing one eligible record to the create operation."""

    row_index: int
    code: Optional[str]
    name: Optional[str]
    status: CommitStatus
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is CommitStatus.COMMITTED


class ImportContext(BaseModel):
    """Fixed context supplied by the caller for every row of a batch."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    program_id: str = Field(min_length=1)
    organization_id: str = Field(min_length=1)


@dataclass(frozen=True, slots=True)
class StandardPayload:
    """Fully qualified record passed to the create operation."""

    program_id: str
    organization_id: str
    code: str
    name: str
    description: str = ""
    order: int = 1
    weight: Optional[Decimal] = None
    objectives: str = ""
    guidelines: str = ""
    status: str = "draft"
    evaluation_criteria: Tuple[str, ...] = field(default_factory=tuple)
    source_row: Optional[int] = None


# ---------------------------------------------------------------------------
# Report models
# ---------------------------------------------------------------------------


class IssueEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    code: str
    message: str


class RejectedEntry(BaseModel):
    """A record that was not eligible for commit, with the reasons."""

    model_config = ConfigDict(frozen=True)

    row_index: int
    record: dict[str, Optional[str]]
    issues: list[IssueEntry] = Field(default_factory=list)
    duplicate_of: Optional[int] = None
    key: Optional[str] = None

    @classmethod
    def from_classification(cls, item: Classification) -> "RejectedEntry":
        return cls(
            row_index=item.row_index,
            record=item.record.as_dict(),
            issues=[
                IssueEntry(field=issue.field.value, code=issue.code, message=issue.message)
                for issue in item.issues
            ],
            duplicate_of=item.duplicate_of,
            key=item.key,
        )


class OutcomeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    row_index: int
    code: Optional[str] = None
    name: Optional[str] = None
    status: CommitStatus
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is CommitStatus.COMMITTED

    @classmethod
    def from_outcome(cls, outcome: CommitOutcome) -> "OutcomeEntry":
        return cls(
            row_index=outcome.row_index,
            code=outcome.code,
            name=outcome.name,
            status=outcome.status,
            error=outcome.error,
        )


class ImportPreview(BaseModel):
    """Classification summary produced without committing anything."""

    total_rows: int
    valid_count: int
    invalid_records: list[RejectedEntry] = Field(default_factory=list)
    duplicate_records: list[RejectedEntry] = Field(default_factory=list)
    unmapped_headers: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid_records)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicate_records)


class ImportReport(ImportPreview):
    """Aggregated outcome returned to callers of the import pipeline."""

    commit_outcomes: list[OutcomeEntry] = Field(default_factory=list)
    cancelled: bool = False

    @field_validator("commit_outcomes")
    @classmethod
    def _outcomes_in_source_order(cls, value: list[OutcomeEntry]) -> list[OutcomeEntry]:
        return sorted(value, key=lambda item: item.row_index)

    @property
    def committed_count(self) -> int:
        return sum(1 for item in self.commit_outcomes if item.status is CommitStatus.COMMITTED)

    @property
    def failed_count(self) -> int:
        return sum(1 for item in self.commit_outcomes if item.status is CommitStatus.FAILED)

    @property
    def not_processed_count(self) -> int:
        return sum(1 for item in self.commit_outcomes if item.status is CommitStatus.NOT_PROCESSED)

    def check_invariants(self) -> None:
        """Raise ``ReportInvariantError`` unless every row is accounted for."""

        classified = self.valid_count + self.invalid_count + self.duplicate_count
        if self.total_rows != classified:
            raise ReportInvariantError(
                f"total_rows={self.total_rows} but valid+invalid+duplicate={classified}"
            )
        if len(self.commit_outcomes) != self.valid_count:
            raise ReportInvariantError(
                f"{len(self.commit_outcomes)} commit outcomes for {self.valid_count} valid rows"
            )
        if self.not_processed_count and not self.cancelled:
            raise ReportInvariantError("rows marked not_processed without cancellation")

    def summary(self) -> dict[str, int]:
        return {
            "total": self.total_rows,
            "valid": self.valid_count,
            "invalid": self.invalid_count,
            "duplicates": self.duplicate_count,
            "committed": self.committed_count,
            "failed": self.failed_count,
            "not_processed": self.not_processed_count,
        }

    def to_dict(self) -> dict[str, object]:
        payload = self.model_dump(mode="json")
        payload["summary"] = self.summary()
        return payload


__all__ = [
    "CanonicalField",
    "Classification",
    "ClassificationKind",
    "CommitOutcome",
    "CommitStatus",
    "FieldMapping",
    "ImportContext",
    "ImportPreview",
    "ImportReport",
    "IssueEntry",
    "MappedRecord",
    "OutcomeEntry",
    "RawRow",
    "RejectedEntry",
    "StandardPayload",
    "ValidationIssue",
    "is_blank",
]
