"""
Identifier keys -- pure value objects for asset and management tags.

Responsibility:
    Defines the composite key of an identifier, validates user-supplied
    categories, year tokens and sequence numbers, and composes the
    human-readable display strings.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Display formats:
    asset tag        category + 2-digit tenant code + year + 4-digit sequence
                     MO + 07 + 24 + 0003            -> "MO07240003"
    management tag   category [+ "-" + year] + "-" + 3-digit sequence
                     "work" + "-2024" + "-005"     -> "work-2024-005"

The tenant code and year parts are omitted when absent.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from asset_kernel.domain.values import IdentifierKind
from asset_kernel.exceptions import ValidationError

MAX_CATEGORY_LENGTH = 50

# Asset tags embed a 2-digit year; management tags take 2 or 4 digits.
_YEAR_PATTERNS: dict[IdentifierKind, re.Pattern[str]] = {
    IdentifierKind.ASSET_TAG: re.compile(r"\d{2}", re.ASCII),
    IdentifierKind.MANAGEMENT_TAG: re.compile(r"\d{2}|\d{4}", re.ASCII),
}


@dataclass(frozen=True)
class SequenceKey:
    """One numbering sequence: (tenant, kind, category, year-or-absent)."""

    tenant_id: int
    kind: IdentifierKind
    category: str
    year: str | None = None

    @property
    def year_key(self) -> str:
        """Storage form of the year; absent years compare equal to each other."""
        return self.year or ""

    def with_sequence(self, sequence: int) -> "IdentifierKey":
        return IdentifierKey(
            tenant_id=self.tenant_id,
            kind=self.kind,
            category=self.category,
            year=self.year,
            sequence=sequence,
        )


@dataclass(frozen=True)
class IdentifierKey:
    """
    Full composite key of one identifier.

    Two keys are equal only if every part is equal; an absent year never
    equals a present one.
    """

    tenant_id: int
    kind: IdentifierKind
    category: str
    year: str | None
    sequence: int

    @property
    def year_key(self) -> str:
        return self.year or ""

    @property
    def sequence_key(self) -> SequenceKey:
        return SequenceKey(self.tenant_id, self.kind, self.category, self.year)

    def display(self, tenant_code: int | None = None) -> str:
        return format_display(
            self.kind, self.category, self.year, self.sequence, tenant_code
        )


def format_display(
    kind: IdentifierKind,
    category: str,
    year: str | None,
    sequence: int,
    tenant_code: int | None = None,
) -> str:
    """Compose the display string of an identifier."""
    if kind == IdentifierKind.ASSET_TAG:
        school = f"{tenant_code:02d}" if tenant_code is not None else ""
        return f"{category}{school}{year or ''}{sequence:04d}"
    if year:
        return f"{category}-{year}-{sequence:03d}"
    return f"{category}-{sequence:03d}"


def normalize_category(value: Any) -> str:
    """Strip and validate a category code."""
    if value is None or not str(value).strip():
        raise ValidationError("category", "must not be blank", value)
    category = str(value).strip()
    if len(category) > MAX_CATEGORY_LENGTH:
        raise ValidationError(
            "category", f"longer than {MAX_CATEGORY_LENGTH} characters", value
        )
    return category


def normalize_year(kind: IdentifierKind, value: Any) -> str | None:
    """
    Validate a year token for the given identifier kind.

    None and blank strings mean "no year".  Integers are accepted and
    rendered as digits, so ``24`` and ``"24"`` are the same token.
    """
    if value is None:
        return None
    token = str(value).strip()
    if not token:
        return None
    if not _YEAR_PATTERNS[kind].fullmatch(token):
        expected = "2 digits" if kind == IdentifierKind.ASSET_TAG else "2 or 4 digits"
        raise ValidationError("year", f"{kind.value} year must be {expected}", value)
    return token


def parse_sequence(value: Any) -> int | None:
    """
    Parse a user-supplied sequence number.

    Returns None when no number was given.  Leading zeros are accepted
    ("0003" -> 3).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("sequence", "must be a positive integer", value)
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if not (text.isascii() and text.isdigit()):
            raise ValidationError("sequence", "must be a positive integer", value)
        number = int(text)
    if number < 1:
        raise ValidationError("sequence", "must be a positive integer", value)
    return number


def year_token_from_date(value: date | None) -> str | None:
    """Two-digit asset-tag year taken from a purchase or install date."""
    if value is None:
        return None
    return f"{value.year % 100:02d}"


def make_sequence_key(
    tenant_id: int,
    kind: IdentifierKind | str,
    category: Any,
    year: Any = None,
) -> SequenceKey:
    """Validated SequenceKey from raw input."""
    try:
        kind = IdentifierKind(kind)
    except ValueError:
        raise ValidationError("kind", "unknown identifier kind", kind) from None
    return SequenceKey(
        tenant_id=tenant_id,
        kind=kind,
        category=normalize_category(category),
        year=normalize_year(kind, year),
    )
