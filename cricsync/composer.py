#!/usr/bin/env python3
"""
Promotional content generation: WhatsApp availability messages, Instagram copy,
and match-day posters.
"""

import json
from typing import Callable, Awaitable, List

from .ai import (
    AIResponse,
    GEMINI_FAST_MODEL,
    GEMINI_IMAGE_MODEL,
    call_gemini_api,
    classify_ai_error,
    text_part,
)
from .models import InstagramOptions, Match, MessageOptions, PosterResult
from .utils import logger, DEFAULT_HOME_TEAM

POSTER_ASPECT_RATIO = "9:16"

AICallFn = Callable[..., Awaitable[AIResponse]]


def selected_matches(matches: List[Match]) -> List[Match]:
    return [m for m in matches if m.selected]


def _serialize(matches: List[Match]) -> str:
    return json.dumps([m.to_dict() for m in matches], ensure_ascii=False)


def build_whatsapp_prompt(matches: List[Match], notes: str = "", options: MessageOptions = None) -> str:
    """
    WhatsApp availability template. Field order is fixed: header, Date, Reporting Time,
    Ball, Match fees, Pay to, Venue, then an empty 1-11 availability pool.
    """
    options = options or MessageOptions()
    header = options.header or "Upcoming Match"
    ball_color = options.ball_color or "White"
    fees = options.fees or "[Amount]"
    pay_to = options.pay_to or "[Number]"
    pool = "\n".join(f"{i}." for i in range(1, 12))

    return f"""
Create a WhatsApp availability message for a cricket team following this EXACT template structure:

{header}
Date - [Date in format: 6th Dec Saturday]
Reporting Time - [30 mins before match time]
Ball - {ball_color}
Match fees - {fees}
Pay to - {pay_to}
Venue - [Venue Name] [Google Map Link]

Availability Pool
{pool}

Instructions:
- Use the match data provided below to fill in the Date, Time, and Venue.
- Match Data: {_serialize(matches)}
- Extra Notes: {notes}
- IMPORTANT: Date format must be like "6th Dec Saturday" (Day of month + Month Short + Day Name).
- IMPORTANT: Ensure times are mentioned in IST (Indian Standard Time).
- If there are multiple matches selected, repeat the match details section (Date/Time/Venue) or summarize them if it's the same day.
- For the "Venue" line, explicitly include the URL from the 'mapLink' field in the data next to the venue name (separated by space).
- Leave the numbered list under "Availability Pool" empty (or with placeholder numbering 1-11) for players to fill in.
- Do NOT include markdown symbols like ** or ##. Keep it clean plain text.
- If "Match fees" or "Pay to" were not provided in the prompt options, use the placeholders as shown.
"""


def build_instagram_prompt(matches: List[Match], options: InstagramOptions) -> str:
    if options.type == "caption":
        what = "an Instagram Caption (with 10-15 relevant hashtags)"
    else:
        what = "text for an Instagram Story overlay"

    return f"""
You are a social media manager for a cricket team.
Generate {what} for the upcoming match.

Match Details: {_serialize(matches)}
Vibe: {options.vibe}

Instructions:
- Ensure times are mentioned in IST (Indian Standard Time).
- If 'caption': Write a catchy hook, list the match details clearly (Date, Time, Venue, Opponent), and end with a Call to Action (e.g., "Cheer for us!"). Include cricket emojis.
- If 'story': Keep it very short and punchy. Focus on "Next Match", "vs Opponent", and "Time/Venue". Designed to be placed on a photo.
- Do not use markdown formatting like **bold** if it makes the text look messy when pasted directly.
"""


def build_poster_prompt(match: Match) -> str:
    home_team = match.home_team or DEFAULT_HOME_TEAM
    venue = (match.venue or "").split(",")[0].strip()

    return f"""
Generate a professional, high-quality {POSTER_ASPECT_RATIO} vertical poster for a cricket match for Instagram Story.

Theme: Cricket, Sports, Energy, Stadium Atmosphere.

Visual Elements:
- Background: A lit cricket stadium at night or a dynamic cricket ground.
- Style: Modern sports graphic design, 3D style, vibrant lighting.
- Focus: A "VERSUS" concept.

Text Integration (Render this text in the image):
- "{home_team}"
- "VS"
- "{match.opponent}"
- "{match.date}"
- "{venue}"

Make it look like an official match day poster. Return only the image.
"""


class MessageComposer:
    """Generates shareable copy for the currently selected matches."""

    def __init__(self,
                 call_ai_fn: AICallFn = call_gemini_api,
                 text_model: str = GEMINI_FAST_MODEL,
                 image_model: str = GEMINI_IMAGE_MODEL):
        self.call_ai_fn = call_ai_fn
        self.text_model = text_model
        self.image_model = image_model

    async def _generate_text(self, prompt: str, context: str) -> AIResponse:
        try:
            return await self.call_ai_fn(self.text_model, [text_part(prompt)])
        except Exception as e:
            logger.error("%s Error: %s", context, e)
            raise classify_ai_error(e) from e

    async def generate_whatsapp_message(self, matches: List[Match], notes: str = "",
                                        options: MessageOptions = None) -> str:
        """Returns "" when nothing is selected."""
        chosen = selected_matches(matches)
        if not chosen:
            return ""
        response = await self._generate_text(build_whatsapp_prompt(chosen, notes, options), "WA Generation")
        return response.text or "Failed to generate message."

    async def generate_instagram_content(self, matches: List[Match], options: InstagramOptions) -> str:
        chosen = selected_matches(matches)
        if not chosen:
            return ""
        response = await self._generate_text(build_instagram_prompt(chosen, options), "IG Generation")
        return response.text or "Failed to generate content."

    async def generate_match_poster(self, matches: List[Match]) -> PosterResult:
        """
        Poster for the first selected match.

        Returns an empty PosterResult when nothing is selected or the reply has no image part.
        """
        chosen = selected_matches(matches)
        if not chosen:
            return PosterResult()

        try:
            response = await self.call_ai_fn(
                self.image_model,
                [text_part(build_poster_prompt(chosen[0]))],
                image_config={"aspectRatio": POSTER_ASPECT_RATIO},
            )
        except Exception as e:
            logger.error("Poster Generation Error: %s", e)
            raise classify_ai_error(e) from e

        if not response.image_data:
            logger.warning("No image part found in poster response")
            return PosterResult()
        return PosterResult(data_uri=response.image_data_uri)
