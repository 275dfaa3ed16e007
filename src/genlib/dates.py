"""GEDCOM date interpretation.

GEDCOM dates are free text: "25 NOV 1954", "ABT 1850", "BET 1850 AND 1855",
and whatever else an export tool felt like writing. interpret_date() turns
such a string into a StructuredDate. It never raises; strings it can't read
come back as an unknown date, which still sorts (after all known dates).
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
import functools
import re


# Month name mappings (handle abbreviations and full names)
MONTH_MAP = {
    "JAN": 1,
    "JANUARY": 1,
    "FEB": 2,
    "FEBRUARY": 2,
    "MAR": 3,
    "MARCH": 3,
    "APR": 4,
    "APRIL": 4,
    "MAY": 5,
    "JUN": 6,
    "JUNE": 6,
    "JUL": 7,
    "JULY": 7,
    "AUG": 8,
    "AUGUST": 8,
    "SEP": 9,
    "SEPT": 9,
    "SEPTEMBER": 9,
    "OCT": 10,
    "OCTOBER": 10,
    "NOV": 11,
    "NOVEMBER": 11,
    "DEC": 12,
    "DECEMBER": 12,
}

MONTH_ABBREVIATIONS = ["JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"]


class DateQualifier(str, Enum):
    EXACT = "exact"
    ABOUT = "about"
    CALCULATED = "calculated"
    ESTIMATED = "estimated"
    BEFORE = "before"
    AFTER = "after"
    BETWEEN = "between"
    FROM = "from"
    TO = "to"
    PERIOD = "period"  # FROM x TO y


class DatePrecision(str, Enum):
    YEAR = "year"
    MONTH = "month"
    DAY = "day"


# Leading keyword -> qualifier. Long forms must win over their abbreviations,
# so the regex alternation is built longest-first.
QUALIFIER_WORDS = {
    "ABT": DateQualifier.ABOUT,
    "ABOUT": DateQualifier.ABOUT,
    "AROUND": DateQualifier.ABOUT,
    "CIRCA": DateQualifier.ABOUT,
    "CA": DateQualifier.ABOUT,
    "CAL": DateQualifier.CALCULATED,
    "CALCULATED": DateQualifier.CALCULATED,
    "EST": DateQualifier.ESTIMATED,
    "ESTIMATED": DateQualifier.ESTIMATED,
    "BEF": DateQualifier.BEFORE,
    "BEFORE": DateQualifier.BEFORE,
    "AFT": DateQualifier.AFTER,
    "AFTER": DateQualifier.AFTER,
    "FROM": DateQualifier.FROM,
    "TO": DateQualifier.TO,
}

_QUALIFIER_RE = re.compile(
    r"^(" + "|".join(sorted(QUALIFIER_WORDS, key=len, reverse=True)) + r")\b\.?:?\s*(.*)$",
    re.IGNORECASE,
)
_BETWEEN_RE = re.compile(r"^(?:BET|BETWEEN)\b\.?\s*(.+?)\s+(?:AND|-)\s+(.+)$", re.IGNORECASE)
_PERIOD_RE = re.compile(r"^FROM\b\s*(.+?)\s+TO\s+(.+)$", re.IGNORECASE)
# Calendar escapes such as @#DGREGORIAN@ or @#DJULIAN@
_CALENDAR_ESCAPE_RE = re.compile(r"@#D[A-Z ]+@", re.IGNORECASE)


@dataclass(frozen=True)
class DateValue:
    """A calendar date known to year, month or day precision."""

    year: int
    month: int | None = None
    day: int | None = None

    @property
    def precision(self) -> DatePrecision:
        if self.day is not None:
            return DatePrecision.DAY
        if self.month is not None:
            return DatePrecision.MONTH
        return DatePrecision.YEAR

    def sort_key(self) -> tuple[int, int, int]:
        return (self.year, self.month or 0, self.day or 0)

    def iso(self) -> str:
        """Sortable text form: YYYY, YYYY-MM or YYYY-MM-DD."""
        if self.month is None:
            return f"{self.year:04d}"
        if self.day is None:
            return f"{self.year:04d}-{self.month:02d}"
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def gedcom(self) -> str:
        parts = []
        if self.day is not None:
            parts.append(str(self.day))
        if self.month is not None:
            parts.append(MONTH_ABBREVIATIONS[self.month - 1])
        parts.append(str(self.year))
        return " ".join(parts)


@functools.total_ordering
@dataclass(frozen=True)
class StructuredDate:
    """
    A normalized date with a qualifier.

    `value` is None when the text could not be read ("unknown"). For BETWEEN
    and PERIOD dates `value` is the lower bound and `upper` the upper bound.
    Ordering: known dates by (lower) value, unknown dates last.
    """

    qualifier: DateQualifier = DateQualifier.EXACT
    value: DateValue | None = None
    upper: DateValue | None = None
    original: str = field(default="", compare=False)

    @classmethod
    def unknown(cls, original: str = "", qualifier: DateQualifier = DateQualifier.EXACT) -> "StructuredDate":
        return cls(qualifier=qualifier, value=None, original=original)

    @property
    def is_unknown(self) -> bool:
        return self.value is None

    @property
    def precision(self) -> DatePrecision | None:
        return self.value.precision if self.value else None

    @property
    def year(self) -> int | None:
        return self.value.year if self.value else None

    def sort_key(self) -> tuple:
        if self.value is None:
            return (1,)
        return (0, self.value.sort_key())

    def __lt__(self, other):
        if not isinstance(other, StructuredDate):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def iso(self) -> str | None:
        return self.value.iso() if self.value else None

    def display(self) -> str:
        """Short human-readable form, e.g. 'abt 1850' or 'bet 1850 and 1855'."""
        if self.value is None:
            return self.original or "unknown"
        if self.qualifier is DateQualifier.BETWEEN:
            return f"bet {self.value.iso()} and {self.upper.iso()}"
        if self.qualifier is DateQualifier.PERIOD:
            return f"from {self.value.iso()} to {self.upper.iso()}"
        if self.qualifier is DateQualifier.EXACT:
            return self.value.iso()
        return f"{_DISPLAY_PREFIX[self.qualifier]} {self.value.iso()}"

    def __str__(self) -> str:
        if self.original:
            return self.original
        if self.value is None:
            return ""
        if self.qualifier is DateQualifier.BETWEEN:
            return f"BET {self.value.gedcom()} AND {self.upper.gedcom()}"
        if self.qualifier is DateQualifier.PERIOD:
            return f"FROM {self.value.gedcom()} TO {self.upper.gedcom()}"
        if self.qualifier is DateQualifier.EXACT:
            return self.value.gedcom()
        return f"{_GEDCOM_PREFIX[self.qualifier]} {self.value.gedcom()}"


_DISPLAY_PREFIX = {
    DateQualifier.ABOUT: "abt",
    DateQualifier.CALCULATED: "cal",
    DateQualifier.ESTIMATED: "est",
    DateQualifier.BEFORE: "bef",
    DateQualifier.AFTER: "aft",
    DateQualifier.FROM: "from",
    DateQualifier.TO: "to",
}
_GEDCOM_PREFIX = {q: p.upper() for q, p in _DISPLAY_PREFIX.items()}


def _make_value(year: int, month: int | None = None, day: int | None = None) -> DateValue | None:
    """Build a DateValue if the parts form a real calendar date."""
    try:
        date(year, month or 1, day or 1)
    except ValueError:
        return None
    return DateValue(year, month, day)


def parse_calendar_date(date_str: str) -> DateValue | None:
    """
    Parse the calendar part of a date (no qualifier) into a DateValue.
    Returns None if the string matches none of the known layouts.

    Handles formats like:
    - "25 NOV 1954", "8 FEB 1911", "11 Aug. 1968", "02 May1838"
    - "NOV 1954", "May, 1837", "1850 MAY"
    - "1698", "1750/51"
    - "1839-08-29", "1746-00-00"
    - "01-27-1920", "05/15/1923", "04 05 1911"
    - "April 17, 1850", "SEPT. 17,1910", "Oct.12,1929"
    - "23/5 1850"
    """
    s = " ".join(date_str.split())
    s = s.strip("()").rstrip("?").strip()
    if not s:
        return None

    # ISO format "1839-08-29" or "1746-00-00"; 00 parts mean "not known"
    match = re.match(r"^(\d{4})-(\d{2})-(\d{2})$", s)
    if match:
        year, month, day = (int(g) for g in match.groups())
        if month == 0:
            return _make_value(year)
        if day == 0:
            return _make_value(year, month)
        return _make_value(year, month, day)

    # "25 NOV 1954", "11 Aug. 1968", "02 May1838" (day month year)
    match = re.match(r"^(\d{1,2})\s+([A-Za-z]+)\.?\s*(\d{3,4})$", s)
    if match:
        month = MONTH_MAP.get(match.group(2).upper())
        if month:
            return _make_value(int(match.group(3)), month, int(match.group(1)))
        return None

    # "NOV 1954", "November 1954", "May, 1837" (month year)
    match = re.match(r"^([A-Za-z]+)\.?,?\s*(\d{3,4})$", s)
    if match:
        month = MONTH_MAP.get(match.group(1).upper())
        if month:
            return _make_value(int(match.group(2)), month)
        return None

    # "1850 MAY" (year month)
    match = re.match(r"^(\d{3,4})\s+([A-Za-z]+)\.?$", s)
    if match:
        month = MONTH_MAP.get(match.group(2).upper())
        if month:
            return _make_value(int(match.group(1)), month)
        return None

    # "1698" (year only), "1750/51" (dual dating, keep the first year)
    match = re.match(r"^(\d{3,4})(?:/\d{1,2})?$", s)
    if match:
        return _make_value(int(match.group(1)))

    # "23/5 1850" (day/month year)
    match = re.match(r"^(\d{1,2})/(\d{1,2})\s+(\d{4})$", s)
    if match:
        return _make_value(int(match.group(3)), int(match.group(2)), int(match.group(1)))

    # "01-27-1920" or "01/27/1920" (MM-DD-YYYY or MM/DD/YYYY)
    match = re.match(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$", s)
    if match:
        return _make_value(int(match.group(3)), int(match.group(1)), int(match.group(2)))

    # "04 05 1911" (MM DD YYYY with spaces)
    match = re.match(r"^(\d{1,2})\s+(\d{1,2})\s+(\d{4})$", s)
    if match:
        return _make_value(int(match.group(3)), int(match.group(1)), int(match.group(2)))

    # "April 17, 1850" or "SEPT. 17,1910" or "Oct.12,1929" (Month DD, YYYY)
    match = re.match(r"^([A-Za-z]+)\.?\s*(\d{1,2}),?\s*(\d{4})$", s)
    if match:
        month = MONTH_MAP.get(match.group(1).upper())
        if month:
            return _make_value(int(match.group(3)), month, int(match.group(2)))

    return None


def interpret_date(date_str: str | None) -> StructuredDate:
    """
    Interpret a raw GEDCOM date string.

    Never raises: anything unreadable yields an unknown StructuredDate that
    keeps the original text.
    """
    if not date_str or not date_str.strip():
        return StructuredDate.unknown(date_str or "")

    original = date_str.strip()
    s = _CALENDAR_ESCAPE_RE.sub("", original).strip()

    # Two-sided forms first, they start with keywords that would otherwise
    # be read as one-sided qualifiers.
    for pattern, qualifier in ((_BETWEEN_RE, DateQualifier.BETWEEN), (_PERIOD_RE, DateQualifier.PERIOD)):
        match = pattern.match(s)
        if match:
            lower = parse_calendar_date(match.group(1))
            upper = parse_calendar_date(match.group(2))
            if lower is None or upper is None:
                return StructuredDate.unknown(original, qualifier)
            if upper.sort_key() < lower.sort_key():
                lower, upper = upper, lower
            return StructuredDate(qualifier, lower, upper, original)

    qualifier = DateQualifier.EXACT
    match = _QUALIFIER_RE.match(s.strip("()"))
    if match:
        qualifier = QUALIFIER_WORDS[match.group(1).upper()]
        s = match.group(2)

    value = parse_calendar_date(s)
    if value is None:
        return StructuredDate.unknown(original, qualifier)
    return StructuredDate(qualifier, value, None, original)
