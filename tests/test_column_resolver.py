"""
Tests for column alias resolution.

Exact case-insensitive matching only; aliases are tried in priority order.
"""
from perfsync.services.column_resolver import COLUMN_ALIASES, find_column, resolve


class TestFindColumn:

    def test_case_insensitive_match_returns_original_key(self):
        row = {"Ad Spend": "100", "LEADS": "4"}
        assert resolve(row, "spend") == "Ad Spend"
        assert resolve(row, "leads") == "LEADS"

    def test_alias_priority_beats_row_order(self):
        """'spend' outranks 'cost' even when 'Cost' comes first in the row."""
        row = {"Cost": "50", "Spend": "75"}
        assert resolve(row, "spend") == "Spend"

    def test_no_partial_matching(self):
        row = {"Total Spend": "100", "leads_total": "3"}
        assert resolve(row, "spend") is None
        assert resolve(row, "leads") is None

    def test_missing_column(self):
        assert resolve({"Date": "2024-01-01"}, "sales") is None

    def test_unknown_field(self):
        assert resolve({"foo": 1}, "foo") is None

    def test_case_duplicates_first_in_row_wins(self):
        row = {"leads": "1", "Leads": "2"}
        assert find_column(row, ("leads",)) == "leads"

    def test_non_string_keys_ignored(self):
        row = {1: "x", "date": "2024-01-01"}
        assert resolve(row, "date") == "date"

    def test_every_field_resolves_its_own_aliases(self):
        for field_name, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                assert resolve({alias.upper(): 1}, field_name) == alias.upper()
