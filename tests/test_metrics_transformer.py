"""
Tests for sheet row -> canonical metric transformation.

Covers:
  - date parsing (ISO, free-form, serial numbers, junk fallback)
  - numeric parsing never raising
  - derived conversion rates and ROAS, including the zero-leads path
  - half-up rounding at the 4th decimal place
  - rows without a date column are skipped
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from perfsync.services.metrics_transformer import (
    MAX_COUNT,
    SERIAL_DATE_EPOCH,
    conversion_rate,
    parse_date,
    parse_number,
    transform_row,
    transform_rows,
)


def _today():
    return datetime.utcnow().date()


# ────────────────────────────────────────────
# DATES
# ────────────────────────────────────────────


class TestParseDate:

    def test_iso_string(self):
        assert parse_date("2024-03-05") == date(2024, 3, 5)

    def test_us_style_string(self):
        assert parse_date("03/05/2024") == date(2024, 3, 5)

    def test_datetime_and_date_passthrough(self):
        assert parse_date(datetime(2024, 3, 5, 14, 30)) == date(2024, 3, 5)
        assert parse_date(date(2024, 3, 5)) == date(2024, 3, 5)

    def test_serial_number(self):
        assert parse_date(45000) == SERIAL_DATE_EPOCH + timedelta(days=45000)
        assert parse_date(0) == SERIAL_DATE_EPOCH

    def test_fractional_serial_truncates(self):
        assert parse_date(10.75) == SERIAL_DATE_EPOCH + timedelta(days=10)

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", float("nan"), 10 ** 12])
    def test_unreadable_falls_back_to_today(self, value):
        assert parse_date(value) == _today()


# ────────────────────────────────────────────
# NUMBERS
# ────────────────────────────────────────────


class TestParseNumber:

    @pytest.mark.parametrize("value,expected", [
        ("12", Decimal("12")),
        ("$1,250.50", Decimal("1250.50")),
        ("1 204", Decimal("1204")),
        (7, Decimal("7")),
        (2.5, Decimal("2.5")),
        (Decimal("3.10"), Decimal("3.10")),
    ])
    def test_valid(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "--", "abc", "NaN", "inf", True, float("inf")])
    def test_invalid_gives_zero(self, value):
        assert parse_number(value) == Decimal("0")

    def test_custom_default(self):
        assert parse_number("junk", default=5) == Decimal("5")

    @pytest.mark.parametrize("value", ["1e30", "-1e30", "1e50000000", "99999999999", 10 ** 12])
    def test_out_of_range_gives_default(self, value):
        assert parse_number(value) == Decimal("0")

    def test_count_limit(self):
        assert parse_number("1e15", limit=MAX_COUNT) == Decimal("1e15")
        assert parse_number("1e19", limit=MAX_COUNT) == Decimal("0")


class TestConversionRate:

    def test_rounds_to_four_places(self):
        assert conversion_rate(1, 3) == Decimal("0.3333")
        assert conversion_rate(2, 3) == Decimal("0.6667")

    def test_tie_rounds_half_up(self):
        # 1 / 20000 = 0.00005 exactly
        assert conversion_rate(1, 20000) == Decimal("0.0001")
        # 3 / 80000 = 0.0000375 -> 0.0000
        assert conversion_rate(3, 80000) == Decimal("0.0000")

    def test_zero_denominator(self):
        assert conversion_rate(5, 0) == Decimal("0")


# ────────────────────────────────────────────
# ROWS
# ────────────────────────────────────────────


class TestTransformRow:

    def test_full_row(self):
        row = {
            "Date": "2024-01-15",
            "Leads": "10",
            "Consults": "4",
            "Sales": "2",
            "Ad Spend": "$500.00",
            "Medium": "Paid Social",
            "Campaign": "Winter Promo",
        }
        m = transform_row(row)

        assert m.date == date(2024, 1, 15)
        assert (m.leads, m.consults, m.sales) == (10, 4, 2)
        assert m.spend == Decimal("500.00")
        assert m.leads_to_consult_rate == Decimal("0.4000")
        assert m.leads_to_sale_rate == Decimal("0.2000")
        assert m.roas == Decimal("0.0040")
        assert m.medium == "Paid Social"
        assert m.campaign == "Winter Promo"
        assert m.source is None
        assert m.raw_data == row

    def test_zero_leads_gives_zero_rates(self):
        m = transform_row({"date": "2024-01-15", "leads": "0", "consults": "3", "sales": "1"})
        assert m.leads_to_consult_rate == Decimal("0")
        assert m.leads_to_sale_rate == Decimal("0")

    def test_roas_column_used_as_is(self):
        m = transform_row({"date": "2024-01-15", "sales": "5", "spend": "100", "ROAS": "3.25"})
        assert m.roas == Decimal("3.25")

    def test_roas_zero_without_spend(self):
        m = transform_row({"date": "2024-01-15", "sales": "5"})
        assert m.roas == Decimal("0")
        assert m.spend == Decimal("0")

    def test_reference_row_rates(self):
        m = transform_row({"date": "2024-01-15", "leads": 100, "consults": 40, "sales": 10, "spend": 500})
        assert m.roas == Decimal("0.0200")
        assert m.leads_to_consult_rate == Decimal("0.4000")
        assert m.leads_to_sale_rate == Decimal("0.1000")

    def test_unknown_header_leaves_spend_zero(self):
        m = transform_row({"date": "2024-01-15", "Budget": "500", "sales": "3"})
        assert m.spend == Decimal("0")
        assert m.roas == Decimal("0")

    def test_out_of_range_count_becomes_zero(self):
        m = transform_row({"Date": "2024-01-02", "Leads": "1e30", "Consults": "3"})
        assert m.leads == 0
        assert m.consults == 3
        assert m.leads_to_consult_rate == Decimal("0")

    def test_huge_exponent_does_not_hang(self):
        m = transform_row({"Date": "2024-01-02", "Leads": "1e50000000", "Spend": "1e50000000"})
        assert m.leads == 0
        assert m.spend == Decimal("0")

    def test_derived_roas_out_of_range_becomes_zero(self):
        m = transform_row({"date": "2024-01-15", "sales": "1e15", "spend": "0.0001"})
        assert m.sales == 10 ** 15
        assert m.roas == Decimal("0")

    def test_missing_numeric_columns_default_to_zero(self):
        m = transform_row({"Day": "2024-01-15"})
        assert (m.leads, m.consults, m.sales) == (0, 0, 0)

    def test_fractional_counts_truncate(self):
        m = transform_row({"date": "2024-01-15", "leads": "3.9"})
        assert m.leads == 3

    def test_no_date_column_skips(self):
        assert transform_row({"Leads": "5", "Spend": "10"}) is None

    def test_blank_date_uses_today(self):
        m = transform_row({"Date": "", "Leads": "1"})
        assert m.date == _today()

    def test_empty_string_segment_preserved(self):
        m = transform_row({"date": "2024-01-15", "medium": "", "location": 12})
        assert m.medium == ""
        assert m.location == "12"

    def test_dimensions_normalize_none(self):
        m = transform_row({"date": "2024-01-15", "campaign": "A"})
        dims = m.dimensions()
        assert dims["campaign"] == "A"
        assert dims["medium"] == ""
        assert m.natural_key("t1") == ("t1", date(2024, 1, 15), "", "", "A", "", "", "")

    def test_derived_rates_bounded_by_input(self):
        for leads, consults, sales in [(1, 1, 1), (7, 3, 2), (100, 0, 0), (9, 9, 0)]:
            m = transform_row({"date": "2024-01-01", "leads": leads, "consults": consults, "sales": sales})
            assert m.leads_to_consult_rate == conversion_rate(consults, leads)
            assert m.leads_to_sale_rate == conversion_rate(sales, leads)


def test_transform_rows_drops_skipped():
    rows = [
        {"date": "2024-01-01", "leads": "1"},
        {"leads": "2"},
        {"date": "2024-01-02", "leads": "3"},
    ]
    metrics = transform_rows(rows)
    assert [m.leads for m in metrics] == [1, 3]
