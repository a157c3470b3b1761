#!/usr/bin/env python3
"""
Top-level coordinator. Owns the SessionState and wires user actions to the
extractor and the composer.
"""

from datetime import date
from typing import Optional, Union

from .composer import MessageComposer
from .extractor import MatchExtractor
from .ai import AIServiceError
from .models import ExtractionResult, InstagramOptions, ManualEntry, MessageOptions, PosterResult, TeamSearchQuery
from .session import SessionState
from .utils import (
    logger,
    DEFAULT_IMAGE_MIME_TYPE,
    NO_MATCHES_FOUND_MESSAGE,
    POSTER_EMPTY_MESSAGE,
    SHARE_FAILED_MESSAGE,
)

DEFAULT_HEADER = "Upcoming Match"
DEFAULT_BALL_COLOR = "White"


class CricSyncApp:
    """
    One user session.

    All state changes go through SessionState; extraction and generation are
    delegated to MatchExtractor and MessageComposer.
    """

    def __init__(self,
                 extractor: Optional[MatchExtractor] = None,
                 composer: Optional[MessageComposer] = None,
                 state: Optional[SessionState] = None):
        self.extractor = extractor or MatchExtractor()
        self.composer = composer or MessageComposer()
        self.state = state or SessionState()

    def _message_options(self) -> MessageOptions:
        return MessageOptions(
            fees=self.state.fees,
            pay_to=self.state.pay_to,
            ball_color=DEFAULT_BALL_COLOR,
            header=DEFAULT_HEADER,
        )

    async def extract(self,
                      payload: Union[str, TeamSearchQuery, ManualEntry],
                      mode: str,
                      today: Optional[date] = None,
                      mime_type: str = DEFAULT_IMAGE_MIME_TYPE) -> ExtractionResult:
        """
        Run one extraction flow with fresh logs and merge the result into the session.

        A search with no matches leaves the session untouched; check `result.is_empty`
        and show NO_MATCHES_FOUND_MESSAGE.
        """
        self.state.clear_logs()
        result = await self.extractor.extract(
            payload, mode,
            on_log=self.state.add_log,
            today=today,
            mime_type=mime_type,
            existing_ids=self.state.match_ids,
        )
        if mode == "search" and result.is_empty:
            logger.info(NO_MATCHES_FOUND_MESSAGE)
            return result
        await self.handle_matches_extracted(result)
        return result

    async def handle_matches_extracted(self, result: ExtractionResult):
        """Append matches, replace sources, and auto-draft the WhatsApp message."""
        self.state.add_extraction(result)
        if not self.state.matches:
            return
        try:
            msg = await self.composer.generate_whatsapp_message(
                self.state.matches, "", self._message_options())
            self.state.set_generated_message(msg)
        except AIServiceError as e:
            logger.error("Auto-generation failed: %s", e)

    async def share_match(self, match_id: str) -> str:
        """Select only this match and draft its WhatsApp message."""
        target = self.state.select_only(match_id)
        self.state.generated_message = f"Generating message for {target.opponent}..."
        try:
            msg = await self.composer.generate_whatsapp_message(
                [target], "", self._message_options())
        except AIServiceError as e:
            logger.error("Single match generation failed: %s", e)
            self.state.generated_message = SHARE_FAILED_MESSAGE
            return self.state.generated_message
        self.state.set_generated_message(msg)
        return msg

    async def generate_whatsapp(self, notes: str = "", ball_color: str = DEFAULT_BALL_COLOR,
                                header: str = "") -> str:
        options = MessageOptions(fees=self.state.fees, pay_to=self.state.pay_to,
                                 ball_color=ball_color, header=header)
        msg = await self.composer.generate_whatsapp_message(self.state.matches, notes, options)
        self.state.set_generated_message(msg)
        return msg

    async def generate_instagram(self, options: InstagramOptions) -> str:
        msg = await self.composer.generate_instagram_content(self.state.matches, options)
        self.state.set_generated_message(msg)
        return msg

    async def generate_poster(self) -> PosterResult:
        self.state.generated_message = ""
        poster = await self.composer.generate_match_poster(self.state.matches)
        if poster.is_empty and self.state.selected_matches():
            self.state.generated_message = POSTER_EMPTY_MESSAGE
        return poster
