"""Core modules for the cricket fixture assistant."""

from .models import (
    Match,
    Source,
    ExtractionResult,
    TeamSearchQuery,
    ManualEntry,
    MessageOptions,
    InstagramOptions,
    PosterResult,
    InputValidationError,
)

from .fixtures import (
    build_map_link,
    parse_match_date,
    format_display_date,
    today_ist,
    compute_upcoming_window,
    filter_upcoming_matches,
    sort_matches_by_date,
    normalize_matches,
)

from .ai import (
    call_gemini_api,
    parse_gemini_response,
    parse_ai_json_array,
    classify_ai_error,
    AIResponse,
    AIServiceError,
    GeminiAPIError,
    JSONArrayParseError,
)

from .extractor import MatchExtractor
from .composer import MessageComposer
from .session import SessionState
from .app import CricSyncApp

from .utils import (
    cprint,
    logger,
    Fore,
    Style,
    IST,
    NO_MATCHES_FOUND_MESSAGE,
    POSTER_EMPTY_MESSAGE,
)

__all__ = [
    # Data model
    'Match',
    'Source',
    'ExtractionResult',
    'TeamSearchQuery',
    'ManualEntry',
    'MessageOptions',
    'InstagramOptions',
    'PosterResult',
    'InputValidationError',
    # Fixtures
    'build_map_link',
    'parse_match_date',
    'format_display_date',
    'today_ist',
    'compute_upcoming_window',
    'filter_upcoming_matches',
    'sort_matches_by_date',
    'normalize_matches',
    # AI functions
    'call_gemini_api',
    'parse_gemini_response',
    'parse_ai_json_array',
    'classify_ai_error',
    'AIResponse',
    'AIServiceError',
    'GeminiAPIError',
    'JSONArrayParseError',
    # Flows
    'MatchExtractor',
    'MessageComposer',
    'SessionState',
    'CricSyncApp',
    # Utilities
    'cprint',
    'logger',
    'Fore',
    'Style',
    'IST',
    'NO_MATCHES_FOUND_MESSAGE',
    'POSTER_EMPTY_MESSAGE',
]
