"""
Column alias resolution

Sheets maintained by different clients name the same metric differently
("Ad Spend", "adspend", "Cost"). Each canonical field owns an ordered alias
list; a row key matches an alias when they are equal ignoring case. No fuzzy
or partial matching.
"""
from typing import Any, Iterable, Mapping, Optional

COLUMN_ALIASES = {
    "date": ("date", "date_range", "date range", "day", "report_date", "report date"),
    "leads": ("leads", "lead_count", "lead count", "new_leads", "new leads"),
    "consults": (
        "consults", "consultations", "consult_count", "consult count",
        "scheduled_consults", "scheduled consults",
    ),
    "sales": ("sales", "sales_count", "sales count", "revenue_count", "revenue count"),
    "spend": ("spend", "ad_spend", "ad spend", "adspend", "cost"),
    "roas": ("roas", "return_on_ad_spend", "return on ad spend"),
    "medium": ("medium", "channel", "media_type", "media type"),
    "source": ("source", "traffic_source", "traffic source"),
    "campaign": ("campaign", "campaign_name", "campaign name"),
    "location": ("location", "location_name", "location name", "office"),
    "user": ("user", "handler", "account_manager", "account manager"),
    "service_person": ("service_person", "service person", "person", "provider"),
}

NUMERIC_FIELDS = ("leads", "consults", "sales", "spend", "roas")
SEGMENT_FIELDS = ("medium", "source", "campaign", "location", "user", "service_person")


def find_column(row: Mapping[str, Any], aliases: Iterable[str]) -> Optional[str]:
    """Return the row key matching the highest-priority alias, ignoring case.

    Aliases are tried in order; if several row keys differ only by case the
    first one in row order wins.
    """
    keys_by_lower = {}
    for key in row.keys():
        if isinstance(key, str):
            keys_by_lower.setdefault(key.lower(), key)

    for alias in aliases:
        key = keys_by_lower.get(alias.lower())
        if key is not None:
            return key
    return None


def resolve(row: Mapping[str, Any], canonical_field: str) -> Optional[str]:
    """Return the row key holding `canonical_field`, or None if no alias matches."""
    aliases = COLUMN_ALIASES.get(canonical_field)
    if not aliases:
        return None
    return find_column(row, aliases)
