"""
Tests for phone number matching.
"""

from types import SimpleNamespace

import pytest

from crm_whatsapp.routing.phone_matching import (
    digits_only,
    find_matching_lead,
    phones_match,
    suffix_match,
)


class TestDigitsOnly:
    def test_strips_formatting(self):
        assert digits_only("+91 70107-49648") == "917010749648"

    def test_none_is_empty(self):
        assert digits_only(None) == ""


class TestPhonesMatch:
    """Tests for the ordered match ladder."""

    def test_exact(self):
        assert phones_match("917010749648", "917010749648")

    def test_plus_prefix_either_side(self):
        """Test '+917010749648' and '917010749648' match in both directions."""
        assert phones_match("917010749648", "+917010749648")
        assert phones_match("+917010749648", "917010749648")

    def test_formatted_digits(self):
        assert phones_match("917010749648", "+91 (70107) 49648")

    def test_last_ten_digits(self):
        """Test a stored local number matches the international sender."""
        assert phones_match("917010749648", "7010749648")
        assert phones_match("7010749648", "917010749648")

    def test_different_numbers(self):
        assert not phones_match("917010749648", "917010749649")

    @pytest.mark.parametrize("stored", ["", None, "n/a", "---"])
    def test_empty_digit_strings_never_match(self, stored):
        """Test a stored phone without digits does not match everything."""
        assert not phones_match("917010749648", stored)

    def test_suffix_requires_digits_on_both_sides(self):
        assert not suffix_match("abc", "917010749648")


class TestFindMatchingLead:
    def test_first_match_in_order_wins(self):
        leads = [
            SimpleNamespace(id=1, phone="+15550001111"),
            SimpleNamespace(id=2, phone="917010749648"),
            SimpleNamespace(id=3, phone="+917010749648"),
        ]

        assert find_matching_lead("+917010749648", leads).id == 2

    def test_no_match(self):
        leads = [SimpleNamespace(id=1, phone="+15550001111")]

        assert find_matching_lead("917010749648", leads) is None

    def test_leads_without_phone_are_skipped(self):
        leads = [SimpleNamespace(id=1, phone=None), SimpleNamespace(id=2, phone="7010749648")]

        assert find_matching_lead("917010749648", leads).id == 2
