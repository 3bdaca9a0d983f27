"""
Placeholder keys, their aliases, and the per-merge replacement map.

Templates in the wild spell the same marker several ways; each spelling is
an alias of one canonical key, and the map answers for all of them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Iterator, List, Optional, Tuple

from ..text.formatting import (
    NOT_AVAILABLE,
    format_currency,
    format_long_date,
    format_number,
    format_short_date,
    number_to_word,
    per_unit_cost,
)
from .models import Quote

COMPANY_NAME = "{{Company Name}}"

# canonical key -> other spellings found in uploaded templates
TOKEN_ALIASES: Dict[str, Tuple[str, ...]] = {
    COMPANY_NAME: ("{{Company_Name}}", "{{ Company Name }}", "{{company name}}", "comp"),
    "[Client.Company]": ("{{company_name}}",),
    "[Client.Name]": ("{{Client Name}}", "{{client_name}}"),
    "[Client.Email]": ("{{Client Email}}", "{{client_email}}"),
    "{{userscount}}": ("{{users_count}}", "{{Users}}"),
    "{{instance_users}}": ("{{instances}}",),
    "{{instance_type}}": ("{{Instance Type}}",),
    "{{data_size}}": ("{{Data Size}}",),
    "{{migration type}}": ("{{migration_type}}", "{{Migration Type}}"),
    "{{plan_name}}": ("{{Plan}}",),
    "{{price_migration}}": ("{{Migration Price}}",),
    "{{price_data}}": ("{{Data Price}}",),
    "{{price_users}}": ("{{User Price}}",),
    "{{price_instances}}": ("{{Instance Price}}",),
    "{{price_services}}": ("{{Service Price}}",),
    "{{per_user_cost}}": ("{{Per User Cost}}",),
    "{{total price}}": ("{{total_price}}", "{{Total Price}}"),
    "{{Duration of months}}": ("{{duration_months}}", "{{Duration}}"),
    "{{duration_words}}": ("{{Duration Words}}",),
    "{{quote_number}}": ("{{Quote Number}}",),
    "{{date}}": ("{{Date}}",),
    "{{Start_date}}": ("{{start_date}}",),
    "{{End_date}}": ("{{end_date}}",),
    "{{deal_id}}": (),
    "{{deal_name}}": (),
    "{{deal_amount}}": (),
    "{{deal_stage}}": (),
}


def _non_empty(value) -> str:
    text = "" if value is None else str(value).strip()
    return text or NOT_AVAILABLE


class PlaceholderMap(Mapping):
    """
    Read-only key -> replacement mapping with alias resolution.

    Every value is non-empty; lookups by alias return the canonical key's value.
    """

    def __init__(self, values: Dict[str, str], aliases: Optional[Dict[str, Tuple[str, ...]]] = None):
        aliases = TOKEN_ALIASES if aliases is None else aliases
        self._values: Dict[str, str] = {}
        for key, value in values.items():
            if not key:
                raise ValueError("Placeholder keys must be non-empty")
            self._values[key] = _non_empty(value)

        self._canonical: Dict[str, str] = {key: key for key in self._values}
        for key, spellings in aliases.items():
            if key not in self._values:
                continue
            for alias in spellings:
                owner = self._canonical.get(alias)
                if owner is not None and owner != key:
                    raise ValueError(f"Alias {alias!r} claimed by both {owner!r} and {key!r}")
                self._canonical[alias] = key

    def __getitem__(self, key: str) -> str:
        return self._values[self._canonical[key]]

    def __contains__(self, key) -> bool:
        return key in self._canonical

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def canonical(self, key: str) -> str:
        """Canonical key for ``key`` (itself when it is not an alias)."""
        return self._canonical.get(key, key)

    def spellings(self, key: str) -> List[str]:
        """The canonical key followed by its aliases."""
        canonical = self.canonical(key)
        return [canonical] + [a for a, k in self._canonical.items() if k == canonical and a != canonical]

    def to_dict(self) -> Dict[str, str]:
        return dict(self._values)


def build_placeholder_map(quote: Quote, quote_number: str) -> PlaceholderMap:
    """Derive every supported placeholder value from ``quote``, once per merge."""
    cfg = quote.configuration
    calc = quote.calculation
    deal = quote.deal
    company = quote.display_company

    values = {
        COMPANY_NAME: company,
        "[Client.Company]": company,
        "[Client.Name]": quote.client_name,
        "[Client.Email]": quote.client_email,
        "{{userscount}}": format_number(cfg.number_of_users),
        "{{instance_users}}": format_number(cfg.number_of_instances),
        "{{instance_type}}": cfg.instance_type,
        "{{data_size}}": f"{format_number(cfg.data_size_gb)} GB",
        "{{migration type}}": cfg.migration_type,
        "{{plan_name}}": quote.selected_tier.name,
        "{{price_migration}}": format_currency(calc.migration_cost),
        "{{price_data}}": format_currency(calc.data_cost),
        "{{price_users}}": format_currency(calc.user_cost),
        "{{price_instances}}": format_currency(calc.instance_cost),
        "{{price_services}}": format_currency(calc.service_cost),
        "{{per_user_cost}}": per_unit_cost(calc.user_cost, cfg.number_of_users),
        "{{total price}}": format_currency(calc.total_cost),
        "{{Duration of months}}": str(cfg.duration_months),
        "{{duration_words}}": number_to_word(cfg.duration_months),
        "{{quote_number}}": quote_number,
        "{{date}}": format_long_date(quote.created_at),
        "{{Start_date}}": format_short_date(cfg.start_date),
        "{{End_date}}": format_short_date(cfg.end_date),
        "{{deal_id}}": deal.deal_id if deal else None,
        "{{deal_name}}": deal.deal_name if deal else None,
        "{{deal_amount}}": format_currency(deal.amount) if deal else None,
        "{{deal_stage}}": deal.stage if deal else None,
    }
    return PlaceholderMap(values)
