"""Unit tests for placeholder keys and the replacement map."""

import pytest

from quotemerge.core.models import Quote
from quotemerge.core.placeholders import (
    COMPANY_NAME, TOKEN_ALIASES, PlaceholderMap, build_placeholder_map
)
from quotemerge.text.formatting import NOT_AVAILABLE


class TestPlaceholderMap:

    def test_alias_lookup(self):
        mapping = PlaceholderMap({COMPANY_NAME: "Acme Corp"})
        assert mapping[COMPANY_NAME] == "Acme Corp"
        assert mapping["{{Company_Name}}"] == "Acme Corp"
        assert mapping["comp"] == "Acme Corp"
        assert "{{company name}}" in mapping
        assert mapping.canonical("{{ Company Name }}") == COMPANY_NAME

    def test_empty_values_become_not_available(self):
        mapping = PlaceholderMap({"{{deal_id}}": "", "{{deal_name}}": None, "{{date}}": "  "})
        assert mapping["{{deal_id}}"] == NOT_AVAILABLE
        assert mapping["{{deal_name}}"] == NOT_AVAILABLE
        assert mapping["{{date}}"] == NOT_AVAILABLE

    def test_missing_key(self):
        mapping = PlaceholderMap({COMPANY_NAME: "Acme"})
        assert "{{unknown}}" not in mapping
        with pytest.raises(KeyError):
            mapping["{{unknown}}"]
        assert mapping.get("{{unknown}}") is None

    def test_iterates_canonical_keys_only(self):
        mapping = PlaceholderMap({COMPANY_NAME: "Acme", "{{date}}": "today"})
        assert sorted(mapping) == sorted([COMPANY_NAME, "{{date}}"])
        assert len(mapping) == 2

    def test_conflicting_aliases_rejected(self):
        aliases = {"a": ("x",), "b": ("x",)}
        with pytest.raises(ValueError):
            PlaceholderMap({"a": "1", "b": "2"}, aliases=aliases)

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            PlaceholderMap({"": "value"})

    def test_spellings(self):
        mapping = PlaceholderMap({COMPANY_NAME: "Acme"})
        spellings = mapping.spellings("comp")
        assert spellings[0] == COMPANY_NAME
        assert set(spellings[1:]) == set(TOKEN_ALIASES[COMPANY_NAME])


class TestBuildPlaceholderMap:

    def test_values_from_quote(self, acme_quote):
        mapping = build_placeholder_map(acme_quote, "Q-1001")
        assert mapping[COMPANY_NAME] == "Acme Corp"
        assert mapping["[Client.Name]"] == "Jane Doe"
        assert mapping["{{userscount}}"] == "150"
        assert mapping["{{data_size}}"] == "500 GB"
        assert mapping["{{price_migration}}"] == "$250"
        assert mapping["{{price_services}}"] == "$950"
        assert mapping["{{per_user_cost}}"] == "$4"
        assert mapping["{{total price}}"] == "$1,200"
        assert mapping["{{Duration of months}}"] == "6"
        assert mapping["{{duration_words}}"] == "Six"
        assert mapping["{{quote_number}}"] == "Q-1001"
        assert mapping["{{Start_date}}"] == "01/05/2026"
        assert mapping["{{deal_id}}"] == "D-77"

    def test_company_falls_back_to_client_name(self):
        quote = Quote.from_dict({"clientName": "Acme Corp", "totalCost": 1200})
        mapping = build_placeholder_map(quote, "Q-1")
        assert mapping[COMPANY_NAME] == "Acme Corp"
        assert mapping["{{total price}}"] == "$1,200"

    def test_zero_users_per_user_cost(self, zero_user_quote):
        mapping = build_placeholder_map(zero_user_quote, "Q-1")
        assert mapping["{{per_user_cost}}"] == NOT_AVAILABLE

    def test_every_value_non_empty(self):
        mapping = build_placeholder_map(Quote(), "")
        assert all(mapping[key] for key in mapping)
        assert mapping["{{deal_id}}"] == NOT_AVAILABLE
