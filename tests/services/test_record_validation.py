from __future__ import annotations

from decimal import Decimal

import pytest

from evidflow.services.standard_import.models import CanonicalField, MappedRecord
from evidflow.services.standard_import.validate import RecordValidator, parse_number


def _validator(import_config) -> RecordValidator:
    return RecordValidator.from_rules(import_config.validations)


def test_valid_record_has_no_issues(import_config) -> None:
    record = MappedRecord(row_index=2, code="1", name="Alpha", order="3", weight="20.5", status="active")
    assert _validator(import_config).validate(record) == []


def test_every_broken_rule_is_reported(import_config) -> None:
    record = MappedRecord(row_index=4, code="1A", name="Alpha", weight="150")

    issues = _validator(import_config).validate(record)

    assert [(issue.field, issue.code) for issue in issues] == [
        (CanonicalField.CODE, "pattern"),
        (CanonicalField.WEIGHT, "out_of_range"),
    ]
    assert all(issue.row_index == 4 for issue in issues)
    assert "between 0 and 100" in issues[1].message


def test_required_fields_trim_whitespace(import_config) -> None:
    record = MappedRecord(row_index=2, code="   ", name=None)

    issues = _validator(import_config).validate(record)

    assert {(issue.field, issue.code) for issue in issues} == {
        (CanonicalField.CODE, "required"),
        (CanonicalField.NAME, "required"),
    }


def test_optional_fields_are_checked_only_when_present(import_config) -> None:
    validator = _validator(import_config)
    record = MappedRecord(
        row_index=2,
        code="3",
        name="x" * 501,
        order="1.5",
        weight="abc",
        status="published",
    )

    codes = [issue.code for issue in validator.validate(record)]

    assert codes == ["max_length", "not_integer", "not_numeric", "not_allowed"]


def test_order_below_minimum(import_config) -> None:
    record = MappedRecord(row_index=2, code="3", name="Gamma", order="0")
    issues = _validator(import_config).validate(record)
    assert [issue.code for issue in issues] == ["out_of_range"]
    assert "at least 1" in issues[0].message


def test_validation_is_idempotent(import_config) -> None:
    validator = _validator(import_config)
    record = MappedRecord(row_index=7, code="123", name="", weight="-1")

    assert validator.validate(record) == validator.validate(record)


def test_parse_number_accepts_plain_decimals_only() -> None:
    assert parse_number(" 12.5 ") == Decimal("12.5")
    assert parse_number("-3") == Decimal("-3")
    assert parse_number("1e2") == Decimal("100")
    assert parse_number("1,000") is None
    assert parse_number("1,5") is None
    assert parse_number("1 2") is None
    assert parse_number("1_000") is None
    assert parse_number("NaN") is None
    assert parse_number("twelve") is None


@pytest.mark.parametrize("value", ["1,5", "1 2", "1_0"])
def test_separated_numbers_are_not_numeric(import_config, value) -> None:
    record = MappedRecord(row_index=2, code="1", name="Alpha", order=value, weight=value)

    issues = _validator(import_config).validate(record)

    assert [(issue.field, issue.code) for issue in issues] == [
        (CanonicalField.ORDER, "not_numeric"),
        (CanonicalField.WEIGHT, "not_numeric"),
    ]


@pytest.mark.parametrize("code", ["０５", "٠٥", "५"])
def test_code_pattern_requires_ascii_digits(import_config, code) -> None:
    record = MappedRecord(row_index=2, code=code, name="Alpha")

    issues = _validator(import_config).validate(record)

    assert [(issue.field, issue.code) for issue in issues] == [(CanonicalField.CODE, "pattern")]
