"""
Australian financial year helpers.

The financial year runs 1 July to 30 June.  A date in July or later belongs
to ``YYYY-(YYYY+1)``; a date in June or earlier belongs to ``(YYYY-1)-YYYY``.
Dates are evaluated in the organisation's timezone (Adelaide by default) so
that a submission late on 30 June local time is not pushed into the next
year by UTC.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from pdr_kernel.exceptions import InvalidFinancialYearError

DEFAULT_TIMEZONE = "Australia/Adelaide"

_FY_LABEL = re.compile(r"^(\d{4})-(\d{4})$")


@dataclass(frozen=True, slots=True)
class FinancialYear:
    label: str
    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @classmethod
    def starting(cls, start_year: int) -> FinancialYear:
        return cls(
            label=f"{start_year}-{start_year + 1}",
            start_date=date(start_year, 7, 1),
            end_date=date(start_year + 1, 6, 30),
        )


def compute_financial_year(
    at: datetime | date,
    timezone: str = DEFAULT_TIMEZONE,
) -> FinancialYear:
    """Return the financial year containing ``at``.

    Aware datetimes are converted to ``timezone`` first; naive datetimes and
    plain dates are taken as already local.
    """
    if isinstance(at, datetime):
        if at.tzinfo is not None:
            at = at.astimezone(ZoneInfo(timezone))
        local_day = at.date()
    else:
        local_day = at

    if local_day.month >= 7:
        return FinancialYear.starting(local_day.year)
    return FinancialYear.starting(local_day.year - 1)


def is_valid_fy_label(label: str) -> bool:
    match = _FY_LABEL.match(label)
    if match is None:
        return False
    start_year, end_year = (int(g) for g in match.groups())
    return end_year == start_year + 1


def financial_year_from_label(label: str) -> FinancialYear:
    """Build a FinancialYear from ``"2025-2026"``.

    Raises:
        InvalidFinancialYearError: if the label is malformed.
    """
    if not is_valid_fy_label(label):
        raise InvalidFinancialYearError(label)
    return FinancialYear.starting(int(label[:4]))
