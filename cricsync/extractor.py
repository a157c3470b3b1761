#!/usr/bin/env python3
"""
Match extraction module.

This module contains the MatchExtractor class that:
- Builds a mode-specific request (search / text / image)
- Calls the AI model (with Google Search grounding in search mode)
- Parses the JSON array out of the reply
- Narrows search results to this week's window
- Normalizes records into Match objects and collects cited sources
"""

from datetime import date
from typing import Any, Awaitable, Callable, List, Optional, Union

from .ai import (
    AIResponse,
    JSONArrayParseError,
    GEMINI_FAST_MODEL,
    GEMINI_SEARCH_MODEL,
    GOOGLE_SEARCH_TOOL,
    call_gemini_api,
    classify_ai_error,
    image_part,
    parse_ai_json_array,
    text_part,
)
from .fixtures import filter_upcoming_matches, normalize_matches
from .models import ExtractionResult, InputValidationError, ManualEntry, TeamSearchQuery
from .utils import logger, DEFAULT_IMAGE_MIME_TYPE, RAW_OUTPUT_PREVIEW_CHARS

MODES = ("search", "text", "image")

AICallFn = Callable[..., Awaitable[AIResponse]]
LogFn = Optional[Callable[[str], None]]


def build_search_prompt(query: TeamSearchQuery) -> str:
    """Search-mode instruction: browse for every non-completed fixture of the team."""
    if query.search_type == "link":
        search_context = f'the cricket team associated with this profile link: "{query.team_link.strip()}".'
    else:
        search_context = (
            f'the team "{query.team_name}" located in "{query.location}" '
            f'captained by "{query.captain_name}".'
        )

    return f"""
You can access web pages. Fetch this info: {search_context}

Task: Extract **only the upcoming matches** for the team (do not include past or completed matches).

Instructions:
1. Find the list of upcoming matches or fixtures for this team.
2. IGNORE "Completed", "Results", or "Past" matches.
3. EXTRACT ALL UPCOMING MATCHES listed on the page. Do not filter them by date yet. I will filter them in the next step.
4. TIMEZONE: Convert all match times to **Indian Standard Time (IST)**.

For each upcoming match return a JSON array where each item has these fields:
- "date": string (YYYY-MM-DD, assume current year if missing)
- "time": string (HH:mm AM/PM). Ensure this is in IST. If strictly not available, use "TBD".
- "home_team": string (Name of the team being searched for, e.g., "Smashers")
- "opponent": string (Opponent team name)
- "venue": string (Venue name and city)
- "match_url": string (The specific URL for this match/scorecard if available)

OUTPUT FORMAT:
Return a JSON array of objects inside a markdown code block (e.g., ```json [...] ```).
"""


def build_extraction_prompt(mode: str, text: Optional[str] = None) -> str:
    """Instruction for text and image modes; same JSON array shape, no web search."""
    fields = "Return JSON array with date (YYYY-MM-DD), time (IST), home_team, opponent, venue."
    if mode == "image":
        prompt = f"Extract cricket match details from this image. {fields}"
    else:
        prompt = f'Extract cricket match details from this text: "{text}". {fields}'
    return prompt + " Output JSON inside ```json``` block."


class MatchExtractor:
    """
    Drives one extraction flow per call.

    Progress lines go to the caller's on_log sink (and the cricsync logger) strictly
    in stage order. AI failures are re-raised as AIServiceError; parse failures yield
    an empty result.
    """

    def __init__(self,
                 call_ai_fn: AICallFn = call_gemini_api,
                 search_model: str = GEMINI_SEARCH_MODEL,
                 fast_model: str = GEMINI_FAST_MODEL):
        self.call_ai_fn = call_ai_fn
        self.search_model = search_model
        self.fast_model = fast_model

    async def extract(self,
                      payload: Union[str, TeamSearchQuery, ManualEntry],
                      mode: str,
                      on_log: LogFn = None,
                      today: Optional[date] = None,
                      mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
                      existing_ids=()) -> ExtractionResult:
        """
        Extract matches from a search query, free text, or base64 image data.

        Args:
            payload: TeamSearchQuery (search), str or ManualEntry (text), base64 str (image)
            mode: "search", "text" or "image"
            on_log: Optional sink for progress lines
            today: IST date the search window starts from (defaults to now)
            mime_type: MIME type of the image payload
            existing_ids: Match ids already in the session

        Returns:
            ExtractionResult; sources are only filled in search mode
        """
        if mode not in MODES:
            raise InputValidationError(f"Unknown extraction mode: {mode}")

        if mode == "search":
            if not isinstance(payload, TeamSearchQuery):
                raise InputValidationError("Search mode needs a TeamSearchQuery")
            payload.validate()
            return await self._extract_search(payload, on_log, today, existing_ids)

        if isinstance(payload, ManualEntry):
            payload.validate()
            payload = payload.to_prompt_text()
        if not isinstance(payload, str) or not payload.strip():
            raise InputValidationError("Nothing to extract from.")
        return await self._extract_content(payload, mode, on_log, mime_type, existing_ids)

    @staticmethod
    def _logger(on_log: LogFn) -> Callable[[str], None]:
        def log(msg: str):
            logger.info(msg)
            if on_log:
                on_log(msg)
        return log

    async def _extract_search(self, query: TeamSearchQuery, on_log: LogFn,
                              today: Optional[date], existing_ids) -> ExtractionResult:
        log = self._logger(on_log)
        model = self.search_model

        log(f"[Flow Start] Initiating Match Extraction Protocol using {model}")
        if query.search_type == "link":
            log(f"[Context] Target Link: {query.team_link.strip()}")
        else:
            log(f"[Context] Target Team: {query.team_name} ({query.location})")

        prompt = build_search_prompt(query)

        try:
            log(f"[Step 1] Sending prompt to {model}...")
            log('> Instruction: "Search for upcoming fixtures for this team"')
            log("> Tool: Google Search (Grounding)")
            response = await self.call_ai_fn(model, [text_part(prompt)], tools=[GOOGLE_SEARCH_TOOL])
        except Exception as e:
            logger.error("Extraction Error: %s", e)
            err = classify_ai_error(e)
            log(f"[Critical Error] {err}")
            raise err from e
        log("[Step 2] Response received from AI Model.")

        if response.grounded:
            log("--- GOOGLE SEARCH RESPONSE DATA ---")
            if response.search_queries:
                log(f"> Queries Executed: {response.search_queries}")
            if response.sources:
                log(f"> Search Results Found: {len(response.sources)}")
                for i, source in enumerate(response.sources, 1):
                    log(f"  [{i}] {source.title}")
                    log(f"      {source.uri}")
            else:
                log("> No grounding chunks returned from search.")
            log("-----------------------------------")

        text = response.text or ""
        log("--- RAW AI OUTPUT START ---")
        log(text[:RAW_OUTPUT_PREVIEW_CHARS] + ("... (truncated)" if len(text) > RAW_OUTPUT_PREVIEW_CHARS else ""))
        log("--- RAW AI OUTPUT END ---")

        log("[Step 3] Parsing JSON payload...")
        records: List[Any] = []
        try:
            records = parse_ai_json_array(text)
            log(f"> Found {len(records)} total matches in response.")
            log("[Step 4] Applying Date Filter (IST Base)")
            records = filter_upcoming_matches(records, today=today, on_log=log)
        except JSONArrayParseError as e:
            log(f"[Error] JSON Parse Failed: {e}")
            records = []

        log("[Step 5] Finalizing Data...")
        log("> Sorting matches by date...")
        matches = normalize_matches(
            records,
            context_location=query.location or None,
            fallback_home_team=query.team_name if query.search_type == "details" else None,
            existing_ids=existing_ids,
        )

        sources = list(response.sources)
        if sources:
            log("[Step 6] Verifying Sources:")
            for source in sources:
                log(f"> Source: {source.uri}")

        log(f"[Flow Complete] Returning {len(matches)} validated matches.")
        for m in matches:
            if m.map_link:
                log(f"> Generated Map: {m.map_link}")
            if m.match_url:
                log(f"> Match Link: {m.match_url}")

        return ExtractionResult(matches=matches, sources=sources)

    async def _extract_content(self, payload: str, mode: str, on_log: LogFn,
                               mime_type: str, existing_ids) -> ExtractionResult:
        log = self._logger(on_log)
        model = self.fast_model

        log(f"[Flow Start] Initializing {mode} mode using {model}...")
        if mode == "image":
            parts = [image_part(payload, mime_type), text_part(build_extraction_prompt(mode))]
        else:
            parts = [text_part(payload), text_part(build_extraction_prompt(mode, payload))]

        try:
            log("[Step 1] Sending content to Gemini...")
            response = await self.call_ai_fn(model, parts)
        except Exception as e:
            logger.error("Manual/Image Extraction Error: %s", e)
            err = classify_ai_error(e)
            log(f"[Error] {err}")
            raise err from e
        log("[Step 2] Response received.")

        records: List[Any] = []
        log("[Step 3] Parsing JSON data...")
        try:
            records = parse_ai_json_array(response.text or "")
        except JSONArrayParseError as e:
            log(f"[Error] JSON Parse Failed: {e}")

        log(f"[Flow Complete] Found {len(records)} matches.")
        matches = normalize_matches(records, existing_ids=existing_ids)
        return ExtractionResult(matches=matches, sources=[])
