#!/usr/bin/env python3
"""
In-memory session state: the match list, cited sources, progress logs,
generated copy and its history, and fixture settings.

Lives for one process; nothing is persisted except explicit CSV exports.
"""

import uuid
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .fixtures import parse_match_date, sort_matches_by_date, today_ist
from .models import ExtractionResult, Match, Source
from .utils import cprint, logger, Fore

EXPORT_COLUMNS = ["id", "date", "time", "home_team", "opponent", "venue", "map_link", "match_url", "selected"]

_MATCH_FIELDS = {f.name for f in fields(Match)}


@dataclass
class HistoryItem:
    id: str
    content: str
    timestamp: str


@dataclass
class WeekDay:
    date: date
    has_match: bool
    is_today: bool


@dataclass
class SessionState:
    matches: List[Match] = field(default_factory=list)
    sources: List[Source] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)
    generated_message: str = ""
    history: List[HistoryItem] = field(default_factory=list)
    fees: str = ""
    pay_to: str = ""
    wa_link: str = ""

    # Logs

    def add_log(self, msg: str):
        self.logs.append(msg)

    def clear_logs(self):
        self.logs = []

    # Matches

    @property
    def match_ids(self) -> List[str]:
        return [m.id for m in self.matches]

    def get_match(self, match_id: str) -> Optional[Match]:
        for m in self.matches:
            if m.id == match_id:
                return m
        return None

    def add_extraction(self, result: ExtractionResult):
        """Append newly extracted matches; sources are replaced."""
        self.matches.extend(result.matches)
        self.sources = list(result.sources)

    def update_match(self, match_id: str, **updates: Any) -> Match:
        match = self.get_match(match_id)
        if match is None:
            raise KeyError(match_id)
        not_editable = set(updates) - (_MATCH_FIELDS - {"id"})
        if not_editable:
            raise ValueError(f"Cannot update fields: {sorted(not_editable)}")
        for key, value in updates.items():
            setattr(match, key, value)
        return match

    def toggle_selected(self, match_id: str) -> Match:
        match = self.get_match(match_id)
        if match is None:
            raise KeyError(match_id)
        match.selected = not match.selected
        return match

    def select_only(self, match_id: str) -> Match:
        """Select exactly one match and deselect every other."""
        target = self.get_match(match_id)
        if target is None:
            raise KeyError(match_id)
        for m in self.matches:
            m.selected = m.id == match_id
        return target

    def delete_match(self, match_id: str):
        self.matches = [m for m in self.matches if m.id != match_id]

    def clear_all(self):
        self.matches = []
        self.sources = []
        self.generated_message = ""

    def selected_matches(self) -> List[Match]:
        return [m for m in self.matches if m.selected]

    def sorted_matches(self, descending: bool = False) -> List[Match]:
        return sort_matches_by_date(self.matches, descending=descending)

    # Generated copy

    def set_generated_message(self, content: str):
        self.generated_message = content
        if content:
            self.history.append(HistoryItem(
                id=uuid.uuid4().hex,
                content=content,
                timestamp=datetime.now().isoformat(),
            ))

    def clear_history(self):
        self.history = []

    # Week view

    def week_days(self, today: Optional[date] = None) -> List[WeekDay]:
        """Monday-to-Sunday week containing today, flagged with match days."""
        if today is None:
            today = today_ist()
        monday = today - timedelta(days=today.weekday())
        match_dates = {parse_match_date(m.date) for m in self.matches}
        days = []
        for i in range(7):
            d = monday + timedelta(days=i)
            days.append(WeekDay(date=d, has_match=d in match_dates, is_today=d == today))
        return days

    # Export

    def matches_dataframe(self) -> pd.DataFrame:
        rows: List[Dict[str, Any]] = []
        for m in self.sorted_matches():
            rows.append({col: getattr(m, col) for col in EXPORT_COLUMNS})
        return pd.DataFrame(rows, columns=EXPORT_COLUMNS)

    def export_matches_csv(self, filename: Optional[str] = None) -> str:
        """Save the match table to CSV and return the file name."""
        if not filename:
            filename = f"fixtures_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        path = Path(filename)
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        df = self.matches_dataframe()
        df.to_csv(path, index=False, encoding="utf-8")
        logger.info("Exported %d matches to %s", len(df), path)
        cprint(f"💾 Saved {len(df)} fixtures to: {path}", Fore.GREEN)
        return str(path)
