"""Normalisation of validated records into create payloads."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from .models import CanonicalField, ImportContext, MappedRecord, StandardPayload
from .validate import parse_number

DEFAULT_STATUS = "draft"
DEFAULT_ORDER = 1


def normalize_code(code: str) -> str:
    """Zero-pad numeric codes to two digits ("5" -> "05")."""

    text = code.strip()
    return text.zfill(2) if text.isascii() and text.isdigit() else text


def _clean_order(text: Optional[str]) -> int:
    if text is None:
        return DEFAULT_ORDER
    number = parse_number(text)
    if number is None:
        return DEFAULT_ORDER
    return int(number) or DEFAULT_ORDER


def _clean_weight(text: Optional[str]) -> Optional[Decimal]:
    if text is None:
        return None
    return parse_number(text)


def build_payload(record: MappedRecord, context: ImportContext) -> StandardPayload:
    """Combine a validated record with the batch context.

    Expects a record that passed validation; ``code`` and ``name`` must be
    present.
    """

    code = record.text(CanonicalField.CODE)
    name = record.text(CanonicalField.NAME)
    if code is None or name is None:
        raise ValueError(f"row {record.row_index} is missing code or name")
    return StandardPayload(
        program_id=context.program_id,
        organization_id=context.organization_id,
        code=normalize_code(code),
        name=name,
        description=record.text(CanonicalField.DESCRIPTION) or "",
        order=_clean_order(record.text(CanonicalField.ORDER)),
        weight=_clean_weight(record.text(CanonicalField.WEIGHT)),
        objectives=record.text(CanonicalField.OBJECTIVES) or "",
        guidelines=record.text(CanonicalField.GUIDELINES) or "",
        status=record.text(CanonicalField.STATUS) or DEFAULT_STATUS,
        source_row=record.row_index,
    )
