#!/usr/bin/env python3
"""
Data model for fixtures, citations, and generation options.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class InputValidationError(ValueError):
    """Raised when user input is incomplete, before any AI call is made."""


@dataclass
class Match:
    """A single fixture between the user's team and an opponent."""
    id: str
    date: Optional[str]
    time: Optional[str]
    opponent: Optional[str]
    venue: Optional[str]
    map_link: Optional[str] = None
    match_url: Optional[str] = None
    selected: bool = False
    home_team: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Camel-cased view, used when serializing matches into prompts."""
        data = {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "opponent": self.opponent,
            "venue": self.venue,
            "mapLink": self.map_link,
            "matchUrl": self.match_url,
            "selected": self.selected,
            "homeTeam": self.home_team,
        }
        return {k: v for k, v in data.items() if v is not None}

    def to_raw(self) -> Dict[str, Any]:
        """Raw record shape accepted by normalize_matches (keeps the id)."""
        return {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "opponent": self.opponent,
            "venue": self.venue,
            "home_team": self.home_team,
            "match_url": self.match_url,
        }


@dataclass
class Source:
    title: str
    uri: str


@dataclass
class ExtractionResult:
    matches: List[Match] = field(default_factory=list)
    sources: List[Source] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.matches


@dataclass
class TeamSearchQuery:
    """
    Search-mode input.

    search_type is "details" (team name, location, captain) or "link" (team profile URL).
    """
    search_type: str = "details"
    team_name: str = ""
    location: str = ""
    captain_name: str = ""
    team_link: str = ""

    def validate(self):
        if self.search_type == "link":
            if not self.team_link.strip():
                raise InputValidationError("Team Link is required.")
        elif not self.team_name.strip():
            raise InputValidationError("Team Name is required.")


@dataclass
class ManualEntry:
    opponent: str = ""
    date: str = ""
    time: str = ""
    venue: str = ""

    def validate(self):
        if not (self.opponent and self.date and self.time and self.venue):
            raise InputValidationError("Please fill in all match fields.")

    def to_prompt_text(self) -> str:
        return (
            f"Upcoming Match:\nOpponent: {self.opponent}\nDate: {self.date}\n"
            f"Time: {self.time}\nVenue: {self.venue}"
        )


@dataclass
class MessageOptions:
    fees: str = ""
    pay_to: str = ""
    ball_color: str = ""
    header: str = ""


INSTAGRAM_VIBES = ("hype", "serious", "fun")
INSTAGRAM_TYPES = ("caption", "story")


@dataclass
class InstagramOptions:
    vibe: str = "hype"
    type: str = "caption"

    def __post_init__(self):
        if self.vibe not in INSTAGRAM_VIBES:
            raise InputValidationError(f"Unknown vibe: {self.vibe}")
        if self.type not in INSTAGRAM_TYPES:
            raise InputValidationError(f"Unknown Instagram content type: {self.type}")


@dataclass
class PosterResult:
    """Poster image as a data URI; empty when the AI returned no image part."""
    data_uri: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.data_uri
