"""
Data Hygiene

Field-level normalization of phones, emails and names ahead of identity
resolution. Each rule can be switched off independently.
"""

import logging
import re
from typing import Optional, Sequence

from pydantic import BaseModel

from golden_record.models.entities import CleanedRecord, RawRecord

logger = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r"\D")


class HygieneRules(BaseModel):
    """Toggles for each hygiene rule."""
    normalize_phone: bool = True
    lowercase_email: bool = True
    trim_whitespace: bool = True
    proper_case_names: bool = True


def normalize_phone(raw: str) -> str:
    """Format a phone number as ``(AAA) BBB-CCCC``.

    Keeps the last ten digits, dropping any country-code prefix. Inputs with
    fewer than ten digits produce a partial shape such as ``(555) 12-``.
    """
    digits = _NON_DIGIT.sub("", raw)
    if len(digits) > 10:
        digits = digits[-10:]
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def normalize_email(raw: str) -> str:
    """Trim and lowercase an email address."""
    return raw.strip().lower()


def proper_case_name(raw: str) -> str:
    """Capitalize the first letter of a name and lowercase the rest.

    Surrounding whitespace is preserved; trimming is a separate rule.
    """
    stripped = raw.strip()
    if not stripped:
        return raw
    start = len(raw) - len(raw.lstrip())
    end = start + len(stripped)
    return raw[:start] + stripped[0].upper() + stripped[1:].lower() + raw[end:]


def clean_record(record: RawRecord, rules: HygieneRules) -> CleanedRecord:
    """Apply the enabled rules to one record."""
    update: dict[str, Optional[str]] = {}

    for field in ("first_name", "last_name"):
        value = getattr(record, field)
        if not value:
            continue
        if rules.proper_case_names:
            value = proper_case_name(value)
        if rules.trim_whitespace:
            value = value.strip()
        update[field] = value

    if record.email:
        update["original_email"] = record.email
        if rules.lowercase_email:
            update["email"] = normalize_email(record.email)

    if record.phone:
        update["original_phone"] = record.phone
        if rules.normalize_phone:
            update["phone"] = normalize_phone(record.phone)

    data = record.model_dump()
    if isinstance(record, CleanedRecord):
        # Re-cleaning keeps the first-seen originals
        update.pop("original_email", None)
        update.pop("original_phone", None)
    data.update(update)
    data["hygiene_applied"] = True
    return CleanedRecord.model_validate(data)


def apply_hygiene(
    raw_records: Sequence[RawRecord],
    rules: Optional[HygieneRules] = None,
) -> list[CleanedRecord]:
    """Clean every record, preserving input order.

    Args:
        raw_records: Records to clean
        rules: Rule toggles (all enabled by default)

    Returns:
        One CleanedRecord per input record
    """
    rules = rules or HygieneRules()
    cleaned = [clean_record(record, rules) for record in raw_records]

    changed = sum(
        1 for before, after in zip(raw_records, cleaned)
        if (before.email, before.phone, before.first_name, before.last_name)
        != (after.email, after.phone, after.first_name, after.last_name)
    )
    logger.info(f"Hygiene applied to {len(cleaned)} records ({changed} changed)")
    return cleaned
