"""Tests for financial year derivation and labels."""

from datetime import date, datetime, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pdr_kernel.domain.financial_year import (
    FinancialYear,
    compute_financial_year,
    financial_year_from_label,
    is_valid_fy_label,
)
from pdr_kernel.exceptions import InvalidFinancialYearError


class TestComputeFinancialYear:
    @pytest.mark.parametrize(
        "day, label",
        [
            (date(2025, 7, 1), "2025-2026"),
            (date(2026, 6, 30), "2025-2026"),
            (date(2026, 1, 15), "2025-2026"),
            (date(2026, 7, 1), "2026-2027"),
        ],
    )
    def test_boundaries(self, day, label):
        assert compute_financial_year(day).label == label

    def test_aware_datetime_uses_local_day(self):
        # 15:00 UTC on 30 June is already 1 July in Adelaide
        at = datetime(2026, 6, 30, 15, 0, tzinfo=timezone.utc)

        assert compute_financial_year(at).label == "2026-2027"
        assert compute_financial_year(at, timezone="UTC").label == "2025-2026"

    def test_naive_datetime_is_taken_as_local(self):
        assert compute_financial_year(datetime(2026, 6, 30, 23, 59)).label == "2025-2026"

    @given(day=st.dates(min_value=date(1950, 1, 1), max_value=date(2150, 12, 31)))
    def test_year_contains_the_day(self, day):
        fy = compute_financial_year(day)

        assert fy.contains(day)
        assert (fy.end_date - fy.start_date).days in (364, 365)


class TestLabels:
    @pytest.mark.parametrize("label", ["2025-2026", "1999-2000"])
    def test_valid(self, label):
        assert is_valid_fy_label(label)

    @pytest.mark.parametrize("label", ["2025-2027", "2025/2026", "25-26", "", "2025-2026x"])
    def test_invalid(self, label):
        assert not is_valid_fy_label(label)

    def test_from_label(self):
        assert financial_year_from_label("2025-2026") == FinancialYear.starting(2025)

    def test_from_bad_label(self):
        with pytest.raises(InvalidFinancialYearError):
            financial_year_from_label("2025-2030")
