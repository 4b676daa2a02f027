"""Column mapping and import configuration for the standard import service."""

from __future__ import annotations

import logging
import re
import unicodedata
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from ruamel.yaml import YAML

from evidflow.core.errors import ConfigError

from .models import CanonicalField, FieldMapping, MappedRecord, RawRow, is_blank

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "standard_import.yaml"

_WHITESPACE = re.compile(r"\s+")


def _canonical(name: str) -> CanonicalField:
    try:
        member = CanonicalField(str(name).strip())
    except ValueError as exc:
        raise ValueError(f"unknown canonical field: {name}") from exc
    if member is CanonicalField.UNMAPPED:
        raise ValueError("the unmapped sentinel cannot be configured")
    return member


class PatternRuleConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    regex: str
    shape: str

    @field_validator("regex")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regex {value!r}: {exc}") from exc
        return value


class RangeRuleConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None
    integer: bool = False


class ValidationRules(BaseModel):
    """Validation directives parsed from the import configuration."""

    model_config = ConfigDict(frozen=True)

    required: List[str] = Field(default_factory=list)
    patterns: Dict[str, PatternRuleConfig] = Field(default_factory=dict)
    max_length: Dict[str, int] = Field(default_factory=dict)
    ranges: Dict[str, RangeRuleConfig] = Field(default_factory=dict)
    enums: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("required")
    @classmethod
    def _known_required(cls, value: List[str]) -> List[str]:
        return [_canonical(name).value for name in value]

    @field_validator("patterns", "max_length", "ranges", "enums")
    @classmethod
    def _known_keys(cls, value: Dict[str, object]) -> Dict[str, object]:
        return {_canonical(name).value: item for name, item in value.items()}


class TemplateConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    sheet: str = "Template"
    column_widths: Dict[str, int] = Field(default_factory=dict)
    samples: List[Dict[str, str]] = Field(default_factory=list)


class ImportConfig(BaseModel):
    """Complete import configuration: synonyms, rules, key and template."""

    model_config = ConfigDict(frozen=True)

    key_field: str = CanonicalField.CODE.value
    input_columns: Dict[str, List[str]] = Field(default_factory=dict)
    validations: ValidationRules = Field(default_factory=ValidationRules)
    template: TemplateConfig = Field(default_factory=TemplateConfig)

    @field_validator("key_field")
    @classmethod
    def _known_key(cls, value: str) -> str:
        return _canonical(value).value

    @field_validator("input_columns")
    @classmethod
    def _known_columns(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        normalized: Dict[str, List[str]] = {}
        for name, synonyms in value.items():
            labels = [str(label) for label in synonyms if str(label).strip()]
            if not labels:
                raise ValueError(f"no header synonyms configured for {name}")
            normalized[_canonical(name).value] = labels
        return normalized

    @property
    def key(self) -> CanonicalField:
        return CanonicalField(self.key_field)

    def synonyms(self) -> Mapping[CanonicalField, tuple[str, ...]]:
        return MappingProxyType(
            {CanonicalField(name): tuple(labels) for name, labels in self.input_columns.items()}
        )

    def preferred_header(self, field_name: CanonicalField) -> str:
        labels = self.input_columns.get(field_name.value)
        return labels[0] if labels else field_name.value


def load_import_config(path: str | Path | None = None) -> ImportConfig:
    """Load the import configuration from YAML."""

    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        raise ConfigError(f"import configuration not found: {config_path}")
    yaml = YAML(typ="safe")
    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.load(fh) or {}
    try:
        return ImportConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid import configuration {config_path}: {exc}") from exc


def normalize_header(label: object) -> str:
    """Case- and whitespace-insensitive form of a header label."""

    if label is None:
        return ""
    text = unicodedata.normalize("NFC", str(label))
    return _WHITESPACE.sub(" ", text).strip().casefold()


class HeaderMapper:
    """Translate display headers into canonical fields.

    The synonym table is copied into a read-only lookup at construction, so a
    mapper can be shared freely between imports.
    """

    def __init__(self, synonyms: Mapping[CanonicalField, Iterable[str]]) -> None:
        lookup: Dict[str, CanonicalField] = {}
        for canonical, labels in synonyms.items():
            for label in labels:
                normalized = normalize_header(label)
                if not normalized:
                    continue
                existing = lookup.get(normalized)
                if existing is not None and existing is not canonical:
                    raise ConfigError(
                        f"header {label!r} is configured for both {existing.value} and {canonical.value}"
                    )
                lookup[normalized] = canonical
        self._lookup: Mapping[str, CanonicalField] = MappingProxyType(lookup)

    @classmethod
    def from_config(cls, config: ImportConfig) -> "HeaderMapper":
        return cls(config.synonyms())

    def resolve(self, header: object) -> CanonicalField:
        return self._lookup.get(normalize_header(header), CanonicalField.UNMAPPED)

    def map(self, headers: Sequence[object]) -> List[FieldMapping]:
        """Map the header row to canonical fields, column by column."""

        mapping: List[FieldMapping] = []
        claimed: Dict[CanonicalField, int] = {}
        for column, header in enumerate(headers):
            label = "" if header is None else str(header)
            canonical = self.resolve(label)
            if canonical is not CanonicalField.UNMAPPED:
                if canonical in claimed:
                    LOGGER.warning(
                        "import.mapping duplicate_header column=%s header=%s field=%s first_column=%s",
                        column,
                        label,
                        canonical.value,
                        claimed[canonical],
                    )
                    canonical = CanonicalField.UNMAPPED
                else:
                    claimed[canonical] = column
            mapping.append(FieldMapping(column=column, header=label, field=canonical))
        return mapping

    def apply(self, mapping: Sequence[FieldMapping], rows: Iterable[RawRow]) -> List[MappedRecord]:
        """Build one record per non-blank row; blank rows are dropped."""

        active = [item for item in mapping if item.is_mapped]
        records: List[MappedRecord] = []
        for row in rows:
            if row.is_blank():
                continue
            values: Dict[str, Optional[str]] = {}
            for item in active:
                cell = row.cells[item.column] if item.column < len(row.cells) else None
                values[item.field.value] = None if cell is None else str(cell)
            records.append(MappedRecord(row_index=row.row_index, **values))
        return records


def unmapped_headers(mapping: Sequence[FieldMapping]) -> List[str]:
    return [item.header for item in mapping if not item.is_mapped and not is_blank(item.header)]


def missing_fields(mapping: Sequence[FieldMapping], expected: Iterable[str]) -> List[str]:
    present = {item.field.value for item in mapping if item.is_mapped}
    return [name for name in expected if name not in present]
