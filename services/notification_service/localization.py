"""
Czech labels and formatting used in notification texts.
"""
from datetime import date, datetime, timezone
from typing import Optional, Union

BEACON_TYPE_LABELS = {
    "breakdown": "porucha",
    "empty_tank": "prázdná nádrž",
    "accident": "nehoda",
    "flat_tire": "defekt",
    "other": "jiné",
}

EVENT_TYPE_LABELS = {
    "minisraz": "Minisraz",
    "velky_sraz": "Velký sraz",
    "trackday": "Trackday",
    "vyjizdka": "Vyjížďka",
}

LISTING_TYPE_LABELS = {
    "wanted_car": "Sháním auto",
    "wanted_parts": "Sháním díly",
    "selling_parts": "Nabízím díly",
    "service": "Nabízím servis",
}

# Kept in sync with the client badge config
BADGE_INFO = {
    "early_adopter": {"name": "Early Adopter", "description": "Jeden z prvních uživatelů aplikace"},
    "high_miler": {"name": "High Miler", "description": "Najeto přes 100 000 km"},
    "wrench_wizard": {"name": "Wrench Wizard", "description": "Více než 20 servisních záznamů"},
    "socialite": {"name": "Socialite", "description": "Více než 50 přátel"},
    "organizer": {"name": "Organizer", "description": "Organizoval jsi alespoň 5 akcí"},
    "test_driver": {"name": "Test Driver", "description": "Pomohl s testováním aplikace"},
    "bk_team": {"name": "BK Team", "description": "Člen týmu Bez Komprese"},
}

EVENT_CHANGE_LABELS = {
    "title": "název",
    "date": "datum",
    "location": "místo",
}

# Genitive month names, as in "18. října"
MONTHS_GENITIVE = [
    "ledna", "února", "března", "dubna", "května", "června",
    "července", "srpna", "září", "října", "listopadu", "prosince",
]

DEFAULT_USER_NAME = "Uživatel"
SOMEONE = "Někdo"


def badge_info(badge_id: str) -> dict:
    return BADGE_INFO.get(badge_id, {"name": badge_id, "description": "Speciální odznak"})


def parse_date(value: Union[str, datetime, date, None]) -> Optional[datetime]:
    """Parse an ISO date/datetime string written by the client."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    # Date-only and naive values are UTC, as the client writes them
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_date(value: Union[datetime, date]) -> str:
    """Numeric Czech date: 18. 10. 2026"""
    return f"{value.day}. {value.month}. {value.year}"


def format_day_month(value: Union[datetime, date]) -> str:
    """Long Czech date without year: 18. října"""
    return f"{value.day}. {MONTHS_GENITIVE[value.month - 1]}"


def format_number(value: Union[int, float]) -> str:
    """Thousands-grouped number, whole values without decimals: 150,000"""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value:,}"


def plural_days(count: int) -> str:
    """Czech plural of 'den' for a positive count."""
    if count == 1:
        return "den"
    if count < 5:
        return "dny"
    return "dní"


def truncate(text: str, limit: int = 100) -> str:
    """First `limit` characters, with an ellipsis when something was cut."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text
