#!/usr/bin/env python3
"""
Fixture normalization: map links, date parsing, the this-week window filter,
and turning loosely-typed AI records into sorted Match objects.
"""

import re
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

from .models import Match
from .utils import logger, IST, GOOGLE_MAPS_SEARCH_URL, _norm

LogFn = Optional[Callable[[str], None]]

DIRECTIONAL_NOTE_RE = re.compile(r'\s*\((near|behind|opp|opposite|next to)\s+[^)]+\)', re.IGNORECASE)

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%a, %b %d, %Y",
]

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_map_link(venue: Optional[str], context_location: Optional[str] = None) -> Optional[str]:
    """
    Build a Google Maps search URL for a venue.

    Returns None for empty, "TBD" or "unknown" venues. Parenthetical directions such as
    "(near the temple)" are dropped, and the context location is appended when the venue
    does not mention it already.
    """
    if not venue or venue.lower() == "tbd" or "unknown" in venue.lower():
        return None

    clean_venue = DIRECTIONAL_NOTE_RE.sub("", venue).strip()

    query = clean_venue
    if context_location and context_location.lower() not in clean_venue.lower():
        query = f"{clean_venue}, {context_location}"

    return GOOGLE_MAPS_SEARCH_URL + quote(query, safe=_URI_COMPONENT_SAFE)


def parse_match_date(value: Any) -> Optional[date]:
    """Parse a match date into a calendar date; None when unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = _norm(value)
    if not s:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        logger.debug("parse_match_date failed for %r", value)
        return None


def format_display_date(value: Any) -> str:
    """Render a match date as DD-Mon-YY, e.g. 10-Dec-25."""
    if not _norm(value):
        return "TBD"
    parsed = parse_match_date(value)
    if parsed is None:
        logger.warning("Invalid date format received: %r", value)
        return str(value)
    return parsed.strftime("%d-%b-%y")


def today_ist(now: Optional[datetime] = None) -> date:
    """Current calendar date in IST. A naive `now` is taken as UTC."""
    if now is None:
        now = datetime.now(IST)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(IST).date()


def compute_upcoming_window(today: date) -> Tuple[datetime, datetime]:
    """
    Window from today 00:00 to the upcoming Sunday 23:59:59.999 IST.
    When today is Sunday the window is today only.
    """
    days_until_sunday = (6 - today.weekday()) % 7
    sunday = today + timedelta(days=days_until_sunday)
    start = datetime.combine(today, time.min, tzinfo=IST)
    end = datetime.combine(sunday, time(23, 59, 59, 999000), tzinfo=IST)
    return start, end


def filter_upcoming_matches(
    records: Iterable[Dict[str, Any]],
    today: Optional[date] = None,
    on_log: LogFn = None,
) -> List[Dict[str, Any]]:
    """Keep raw records dated between today and the upcoming Sunday (inclusive)."""
    def log(msg: str):
        if on_log:
            on_log(msg)

    if today is None:
        today = today_ist()
    start, end = compute_upcoming_window(today)
    log(f"> Filter Range: {start.strftime('%a %b %d %Y')} to {end.strftime('%a %b %d %Y')}")

    kept = []
    for record in records:
        raw_date = record.get("date") if isinstance(record, dict) else None
        parsed = parse_match_date(raw_date)
        if parsed is None:
            log(f"> Excluding: Invalid Date ({raw_date})")
            continue
        match_start = datetime.combine(parsed, time.min, tzinfo=IST)
        if start <= match_start <= end:
            log(f"> Keeping: {raw_date} vs {record.get('opponent')}")
            kept.append(record)
        else:
            log(f"> Excluding: {raw_date} (Outside range)")
    return kept


def _date_sort_key(match: Match) -> Tuple[int, date]:
    parsed = parse_match_date(match.date)
    if parsed is None:
        return 1, date.max
    return 0, parsed


def sort_matches_by_date(matches: List[Match], descending: bool = False) -> List[Match]:
    """Stable sort by date; unparseable dates always go last."""
    if not descending:
        return sorted(matches, key=_date_sort_key)
    valid = [m for m in matches if parse_match_date(m.date) is not None]
    invalid = [m for m in matches if parse_match_date(m.date) is None]
    return sorted(valid, key=_date_sort_key, reverse=True) + invalid


def _new_match_id(taken: set) -> str:
    while True:
        candidate = uuid.uuid4().hex
        if candidate not in taken:
            taken.add(candidate)
            return candidate


def normalize_matches(
    records: Iterable[Dict[str, Any]],
    context_location: Optional[str] = None,
    fallback_home_team: Optional[str] = None,
    existing_ids: Iterable[str] = (),
) -> List[Match]:
    """
    Turn raw AI records into Match objects.

    Records are kept as-is even when fields are missing. The result is sorted by date and
    the earliest match starts selected. A record that already carries an "id" keeps it.
    """
    taken = set(existing_ids)
    matches: List[Match] = []
    for record in records:
        if not isinstance(record, dict):
            logger.debug("Skipping non-object record: %r", record)
            continue
        match_id = _norm(record.get("id"))
        if not match_id or match_id in taken:
            match_id = _new_match_id(taken)
        else:
            taken.add(match_id)

        venue = record.get("venue")
        home_team = record.get("home_team") or record.get("homeTeam") or fallback_home_team or None
        matches.append(Match(
            id=match_id,
            date=record.get("date"),
            time=record.get("time"),
            opponent=record.get("opponent"),
            venue=venue,
            map_link=build_map_link(venue if isinstance(venue, str) else None, context_location),
            match_url=record.get("match_url") or record.get("matchUrl"),
            selected=False,
            home_team=home_team,
        ))

    matches = sort_matches_by_date(matches)
    if matches:
        matches[0].selected = True
    return matches
