"""
Calendar Month Value Object

DESIGN DECISION: A budget month is a (year, month) pair, not a timestamp.
Comparing timestamps drags time-of-day, day-of-month and timezone into
what should be a simple equality check. Everything that is keyed by month
(entries, summaries, navigation) goes through this type.
"""

import calendar
import re
from datetime import date, datetime, timedelta
from functools import total_ordering
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_NAME_LOOKUP = {name.lower(): idx for idx, name in enumerate(MONTH_NAMES, start=1)}
_NAME_LOOKUP.update({name[:3].lower(): idx for idx, name in enumerate(MONTH_NAMES, start=1)})

_LABEL_RE = re.compile(r"^\s*([A-Za-z]+)\.?\s+(\d{4})\s*$")
_ISO_MONTH_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})(?:-(\d{1,2}))?\s*$")


DateLike = Union[date, datetime, str]


class InvalidPeriodError(ValueError):
    """A period label could not be turned into a month."""
    pass


@total_ordering
class Month(BaseModel):
    """
    A calendar month.

    Immutable and hashable, so it can be used as a dictionary key and
    compared with ==, < and friends.
    """
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_date(cls, value: DateLike) -> "Month":
        """Build the month containing a date, datetime or ISO date string."""
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value.strip())
            except ValueError:
                return cls.parse(value)
        return cls(year=value.year, month=value.month)

    @classmethod
    def current(cls) -> "Month":
        return cls.from_date(date.today())

    @classmethod
    def parse(cls, label: str) -> "Month":
        """
        Parse a human-readable period.

        Accepts "October 2026", "Oct 2026", "2026-10" and "2026-10-19".

        Raises:
            InvalidPeriodError: If the label matches none of these
        """
        if not isinstance(label, str) or not label.strip():
            raise InvalidPeriodError(f"Empty period label: {label!r}")

        match = _LABEL_RE.match(label)
        if match:
            month_number = _NAME_LOOKUP.get(match.group(1).lower())
            if month_number is None:
                raise InvalidPeriodError(f"Unknown month name in period: {label!r}")
            return cls._build(int(match.group(2)), month_number, label)

        match = _ISO_MONTH_RE.match(label)
        if match:
            year, month_number = int(match.group(1)), int(match.group(2))
            if match.group(3) is not None:
                # Day must exist even though it is discarded
                try:
                    date(year, month_number, int(match.group(3)))
                except ValueError as e:
                    raise InvalidPeriodError(f"Invalid date in period {label!r}: {e}")
            return cls._build(year, month_number, label)

        raise InvalidPeriodError(f"Unrecognised period label: {label!r}")

    @classmethod
    def _build(cls, year: int, month_number: int, label: str) -> "Month":
        if not 1 <= month_number <= 12 or not 1 <= year <= 9999:
            raise InvalidPeriodError(f"Period out of range: {label!r}")
        return cls(year=year, month=month_number)

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def shift(self, months: int) -> "Month":
        """
        Move by a whole number of calendar months.

        Raises:
            InvalidPeriodError: If the result falls outside years 1-9999
        """
        index = self.year * 12 + (self.month - 1) + months
        year, month_number = divmod(index, 12)
        return self._build(year, month_number + 1, f"{self.label} {months:+d} months")

    def next(self) -> "Month":
        return self.shift(1)

    def previous(self) -> "Month":
        return self.shift(-1)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    @property
    def label(self) -> str:
        """Display label, e.g. 'October 2026'."""
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"

    @property
    def iso(self) -> str:
        """First day as YYYY-MM-DD, the storage representation."""
        return self.first_day.isoformat()

    def days(self) -> list[date]:
        """Every date in the month, in order."""
        return [self.first_day + timedelta(days=i) for i in range(self.days_in_month)]

    def contains(self, value: Union[date, datetime]) -> bool:
        return value.year == self.year and value.month == self.month

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Month):
            return NotImplemented
        return (self.year, self.month) < (other.year, other.month)

    def __str__(self) -> str:
        return self.label


def normalize_month(value: DateLike) -> date:
    """
    Collapse any date to the first day of its month.

    normalize_month(normalize_month(d)) == normalize_month(d)
    """
    return Month.from_date(value).first_day
