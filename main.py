#!/usr/bin/env python3
"""
Main entry point for the cricket fixture assistant.

This orchestrates the workflow:
1. Pull fixtures from a team search, free text, manual entry, or a screenshot
2. Filter search results to this week (today through Sunday, IST)
3. Normalize and sort the fixtures, selecting the earliest one
4. Draft a WhatsApp availability message, Instagram copy, or a poster

Usage:
    python main.py search --team-name "Smashers" --location "Mumbai"
    python main.py search --link "https://cricheroes.com/team-profile/..."
    python main.py manual --opponent "Super Kings" --date 2025-12-10 --time 18:00 --venue "Oval Ground, Mumbai"
    python main.py text "Sunday 7 Dec vs Titans at Azad Maidan 7am"
    python main.py image fixtures.png --poster poster.png

Environment Variables:
    GEMINI_API_KEY: API key for Gemini (required)
    GEMINI_API_URL: Custom API endpoint (optional)
    GEMINI_TIMEOUT: Request timeout in seconds (default: 120)
    GEMINI_SEARCH_MODEL: Model for web-search extraction (default: gemini-3-pro-preview)
    GEMINI_FAST_MODEL: Model for text/image extraction and copy (default: gemini-2.5-flash)
    GEMINI_IMAGE_MODEL: Model for posters (default: gemini-2.5-flash-image)
"""

import argparse
import asyncio
import base64
import binascii
import mimetypes
import sys
from pathlib import Path

from cricsync import (
    CricSyncApp,
    InputValidationError,
    AIServiceError,
    InstagramOptions,
    ManualEntry,
    TeamSearchQuery,
    format_display_date,
    cprint,
    logger,
    Fore,
    Style,
    NO_MATCHES_FOUND_MESSAGE,
)
from cricsync.utils import DEFAULT_IMAGE_MIME_TYPE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cricket fixture assistant")
    sub = parser.add_subparsers(dest="mode", required=True)

    search = sub.add_parser("search", help="Search the web for the team's upcoming fixtures")
    search.add_argument("--team-name", default="", help="Team name")
    search.add_argument("--location", default="", help="City or area of the team")
    search.add_argument("--captain", default="", help="Captain name")
    search.add_argument("--link", default="", help="Team profile link (used instead of the name)")

    text = sub.add_parser("text", help="Extract fixtures from free text")
    text.add_argument("content", help="Text containing match details")

    manual = sub.add_parser("manual", help="Add a single fixture by hand")
    manual.add_argument("--opponent", required=True)
    manual.add_argument("--date", required=True)
    manual.add_argument("--time", required=True)
    manual.add_argument("--venue", required=True)

    image = sub.add_parser("image", help="Extract fixtures from a screenshot")
    image.add_argument("path", help="Image file")

    for p in (search, text, manual, image):
        p.add_argument("--fees", default="", help="Match fees for the WhatsApp message")
        p.add_argument("--pay-to", default="", help="Payment number for the WhatsApp message")
        p.add_argument("--notes", default="", help="Extra notes for the WhatsApp message")
        p.add_argument("--ball", default="White", help="Ball colour (default: White)")
        p.add_argument("--header", default="", help="WhatsApp message header")
        p.add_argument("--instagram", choices=["caption", "story"], default=None,
                       help="Also generate Instagram copy")
        p.add_argument("--vibe", choices=["hype", "serious", "fun"], default="hype")
        p.add_argument("--poster", default=None, help="Generate a poster and save it to this path")
        p.add_argument("--export", default=None, help="Save fixtures to this CSV file")
        p.add_argument("--verbose", action="store_true", help="Print the extraction log")
    return parser


def load_payload(args):
    """Map CLI arguments to an extractor payload and mode."""
    if args.mode == "search":
        search_type = "link" if args.link else "details"
        return TeamSearchQuery(
            search_type=search_type,
            team_name=args.team_name,
            location=args.location,
            captain_name=args.captain,
            team_link=args.link,
        ), "search", DEFAULT_IMAGE_MIME_TYPE
    if args.mode == "manual":
        return ManualEntry(opponent=args.opponent, date=args.date,
                           time=args.time, venue=args.venue), "text", DEFAULT_IMAGE_MIME_TYPE
    if args.mode == "image":
        path = Path(args.path)
        mime_type = mimetypes.guess_type(path.name)[0] or DEFAULT_IMAGE_MIME_TYPE
        data = base64.b64encode(path.read_bytes()).decode("ascii")
        return data, "image", mime_type
    return args.content, "text", DEFAULT_IMAGE_MIME_TYPE


def save_poster(data_uri: str, filename: str) -> str:
    """Write the bytes of a base64 data URI to disk."""
    _, _, encoded = data_uri.partition(";base64,")
    try:
        raw = base64.b64decode(encoded)
    except binascii.Error as e:
        raise ValueError(f"Poster data is not valid base64: {e}") from e
    Path(filename).write_bytes(raw)
    return filename


def print_matches(app: CricSyncApp):
    cprint("\n📋 Fixtures:", Fore.CYAN, Style.BRIGHT)
    for m in app.state.sorted_matches():
        marker = "✅" if m.selected else "  "
        cprint(f" {marker} {format_display_date(m.date)} {m.time or 'TBD'}  "
               f"{m.home_team or 'My Team'} vs {m.opponent}", Fore.WHITE)
        cprint(f"      📍 {m.venue or 'TBD'}", Fore.WHITE)
        if m.map_link:
            cprint(f"      {m.map_link}", Fore.BLUE)
        if m.match_url:
            cprint(f"      {m.match_url}", Fore.BLUE)
    if app.state.sources:
        cprint("\n🔗 Data Sources:", Fore.CYAN)
        for s in app.state.sources:
            cprint(f"   {s.title or 'Web Source'}: {s.uri}", Fore.BLUE)


async def main(argv=None) -> int:
    """Main execution function."""
    args = build_parser().parse_args(argv)

    app = CricSyncApp()
    app.state.fees = args.fees
    app.state.pay_to = args.pay_to

    cprint("=" * 60, Fore.WHITE, Style.BRIGHT)
    cprint("🏏 CRICSYNC FIXTURE ASSISTANT", Fore.WHITE, Style.BRIGHT)
    cprint("=" * 60, Fore.WHITE, Style.BRIGHT)

    try:
        payload, mode, mime_type = load_payload(args)
        cprint(f"🔄 Extracting fixtures ({mode} mode)...", Fore.BLUE, Style.BRIGHT)
        result = await app.extract(payload, mode, mime_type=mime_type)

        if args.verbose:
            for line in app.state.logs:
                cprint(f"   {line}", Fore.WHITE)

        if result.is_empty:
            cprint(f"\n⚠️ {NO_MATCHES_FOUND_MESSAGE}", Fore.YELLOW)
            return 0

        print_matches(app)

        if args.notes or args.ball != "White" or args.header:
            await app.generate_whatsapp(notes=args.notes, ball_color=args.ball, header=args.header)
        if app.state.generated_message:
            cprint("\n💬 WhatsApp message:", Fore.GREEN, Style.BRIGHT)
            cprint(app.state.generated_message, Fore.WHITE)

        if args.instagram:
            content = await app.generate_instagram(InstagramOptions(vibe=args.vibe, type=args.instagram))
            cprint(f"\n📸 Instagram {args.instagram}:", Fore.MAGENTA, Style.BRIGHT)
            cprint(content, Fore.WHITE)

        if args.poster:
            poster = await app.generate_poster()
            if poster.is_empty:
                cprint(f"\n⚠️ {app.state.generated_message}", Fore.YELLOW)
            else:
                save_poster(poster.data_uri, args.poster)
                cprint(f"\n🖼️ Poster saved to: {args.poster}", Fore.GREEN)

        if args.export:
            app.state.export_matches_csv(args.export)

        cprint("\n✅ Done.", Fore.GREEN, Style.BRIGHT)
        return 0

    except InputValidationError as e:
        cprint(f"\n❌ {e}", Fore.RED, Style.BRIGHT)
        return 2

    except AIServiceError as e:
        for line in app.state.logs:
            cprint(f"   {line}", Fore.WHITE)
        cprint(f"\n❌ {e}", Fore.RED, Style.BRIGHT)
        return 1

    except KeyboardInterrupt:
        cprint("\n⚠️ Process interrupted by user", Fore.YELLOW)
        return 1


def run():
    try:
        sys.exit(asyncio.run(main()))
    except Exception as e:
        logger.exception("Unhandled exception: %s", e)
        cprint(f"\n❌ Unhandled exception: {e}", Fore.RED, Style.BRIGHT)
        sys.exit(1)


if __name__ == "__main__":
    run()
