"""Validation layer for mapped standard records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Protocol, Tuple

from .mapping import ValidationRules
from .models import CanonicalField, MappedRecord, ValidationIssue


class Rule(Protocol):
    """A single independent check contributing at most one issue."""

    field: CanonicalField

    def check(self, record: MappedRecord) -> Optional[ValidationIssue]:  # pragma: no cover - interface definition
        ...


_PLAIN_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def parse_number(text: str) -> Optional[Decimal]:
    """Parse a plain ASCII decimal (``.`` as the decimal point), or ``None``.

    Inputs with ``,``, spaces or ``_`` inside are rejected, not reinterpreted.
    """

    candidate = text.strip()
    if not _PLAIN_NUMBER.fullmatch(candidate):
        return None
    try:
        number = Decimal(candidate)
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def _format_bound(value: float) -> str:
    number = Decimal(str(value))
    return format(number.normalize(), "f") if number == number.to_integral_value() else str(value)


@dataclass(frozen=True)
class RequiredRule:
    field: CanonicalField

    def check(self, record: MappedRecord) -> Optional[ValidationIssue]:
        if record.text(self.field) is not None:
            return None
        return ValidationIssue(
            field=self.field,
            message=f"{self.field.value} is required",
            row_index=record.row_index,
            code="required",
        )


@dataclass(frozen=True)
class PatternRule:
    field: CanonicalField
    regex: str
    shape: str

    def check(self, record: MappedRecord) -> Optional[ValidationIssue]:
        text = record.text(self.field)
        if text is None or re.fullmatch(self.regex, text, re.ASCII):
            return None
        return ValidationIssue(
            field=self.field,
            message=f"{self.field.value} must be {self.shape} (got {text!r})",
            row_index=record.row_index,
            code="pattern",
        )


@dataclass(frozen=True)
class MaxLengthRule:
    field: CanonicalField
    limit: int

    def check(self, record: MappedRecord) -> Optional[ValidationIssue]:
        text = record.text(self.field)
        if text is None or len(text) <= self.limit:
            return None
        return ValidationIssue(
            field=self.field,
            message=f"{self.field.value} is too long ({len(text)} > {self.limit} characters)",
            row_index=record.row_index,
            code="max_length",
        )


@dataclass(frozen=True)
class NumericRangeRule:
    field: CanonicalField
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    integer: bool = False

    def _describe(self) -> str:
        if self.minimum is not None and self.maximum is not None:
            return f"between {_format_bound(self.minimum)} and {_format_bound(self.maximum)}"
        if self.minimum is not None:
            return f"at least {_format_bound(self.minimum)}"
        return f"at most {_format_bound(self.maximum)}"

    def check(self, record: MappedRecord) -> Optional[ValidationIssue]:
        text = record.text(self.field)
        if text is None:
            return None
        number = parse_number(text)
        if number is None:
            return ValidationIssue(
                field=self.field,
                message=f"{self.field.value} must be a number (got {text!r})",
                row_index=record.row_index,
                code="not_numeric",
            )
        if self.integer and number != number.to_integral_value():
            return ValidationIssue(
                field=self.field,
                message=f"{self.field.value} must be a whole number (got {text!r})",
                row_index=record.row_index,
                code="not_integer",
            )
        too_low = self.minimum is not None and number < Decimal(str(self.minimum))
        too_high = self.maximum is not None and number > Decimal(str(self.maximum))
        if too_low or too_high:
            return ValidationIssue(
                field=self.field,
                message=f"{self.field.value} must be {self._describe()} (got {text})",
                row_index=record.row_index,
                code="out_of_range",
            )
        return None


@dataclass(frozen=True)
class EnumRule:
    field: CanonicalField
    allowed: Tuple[str, ...]

    def check(self, record: MappedRecord) -> Optional[ValidationIssue]:
        text = record.text(self.field)
        if text is None or text in self.allowed:
            return None
        return ValidationIssue(
            field=self.field,
            message=f"{self.field.value} must be one of {', '.join(self.allowed)} (got {text!r})",
            row_index=record.row_index,
            code="not_allowed",
        )


def build_rules(rules: ValidationRules) -> Tuple[Rule, ...]:
    """Expand the configured directives into an ordered rule table.

    Rules are grouped by field in canonical order so issues for one record
    read in template column order.
    """

    table: List[Rule] = []
    for field_name in CanonicalField.record_fields():
        key = field_name.value
        if key in rules.required:
            table.append(RequiredRule(field_name))
        if key in rules.patterns:
            pattern = rules.patterns[key]
            table.append(PatternRule(field_name, regex=pattern.regex, shape=pattern.shape))
        if key in rules.max_length:
            table.append(MaxLengthRule(field_name, limit=rules.max_length[key]))
        if key in rules.ranges:
            bounds = rules.ranges[key]
            table.append(
                NumericRangeRule(field_name, minimum=bounds.min, maximum=bounds.max, integer=bounds.integer)
            )
        if key in rules.enums:
            table.append(EnumRule(field_name, allowed=tuple(rules.enums[key])))
    return tuple(table)


class RecordValidator:
    """Apply every rule to a record and collect all issues."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        self._rules: Tuple[Rule, ...] = tuple(rules)

    @classmethod
    def from_rules(cls, rules: ValidationRules) -> "RecordValidator":
        return cls(build_rules(rules))

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def validate(self, record: MappedRecord) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for rule in self._rules:
            issue = rule.check(record)
            if issue is not None:
                issues.append(issue)
        return issues
