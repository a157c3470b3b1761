import asyncio

import pytest

from cricsync.ai import AIResponse, AIServiceError, GeminiAPIError, OVERLOADED_MESSAGE
from cricsync.composer import MessageComposer, build_poster_prompt, build_whatsapp_prompt
from cricsync.fixtures import normalize_matches
from cricsync.models import InstagramOptions, MessageOptions, InputValidationError


@pytest.fixture
def matches():
    return normalize_matches([
        {"date": "2025-12-07", "time": "7:00 AM", "opponent": "Titans", "venue": "Azad Maidan, Mumbai"},
        {"date": "2025-12-14", "time": "7:00 AM", "opponent": "Kings", "venue": "Oval Ground"},
    ], fallback_home_team="Smashers")


def test_whatsapp_template_fields_in_order(matches):
    prompt = build_whatsapp_prompt(matches[:1])
    labels = ["Upcoming Match", "Date - ", "Reporting Time - ", "Ball - White", "Match fees - [Amount]",
              "Pay to - [Number]", "Venue - ", "Availability Pool", "1.", "11.", "Match Data: "]
    positions = [prompt.index(label) for label in labels]
    assert positions == sorted(positions)
    assert '"opponent": "Titans"' in prompt
    assert '"mapLink": "https://www.google.com/maps/search/' in prompt


def test_whatsapp_options_replace_placeholders(matches):
    options = MessageOptions(fees="300", pay_to="98200 00000", ball_color="Pink", header="Sunday Game")
    prompt = build_whatsapp_prompt(matches[:1], notes="Bring whites", options=options)
    assert "Sunday Game\nDate - " in prompt
    assert "Ball - Pink" in prompt
    assert "Match fees - 300" in prompt
    assert "Pay to - 98200 00000" in prompt
    assert "Extra Notes: Bring whites" in prompt
    assert "[Amount]" not in prompt.split("Instructions:")[0]


def test_nothing_selected_is_a_no_op(fake_ai, matches):
    for m in matches:
        m.selected = False
    ai = fake_ai()
    composer = MessageComposer(call_ai_fn=ai)
    assert asyncio.run(composer.generate_whatsapp_message(matches)) == ""
    assert asyncio.run(composer.generate_instagram_content(matches, InstagramOptions())) == ""
    assert asyncio.run(composer.generate_match_poster(matches)).is_empty
    assert ai.calls == []


def test_whatsapp_uses_only_selected_matches(fake_ai, matches):
    ai = fake_ai("Upcoming Match\nDate - 7th Dec Sunday")
    text = asyncio.run(MessageComposer(call_ai_fn=ai).generate_whatsapp_message(matches))
    assert text == "Upcoming Match\nDate - 7th Dec Sunday"
    assert "Titans" in ai.prompt()
    assert "Kings" not in ai.prompt()
    assert ai.calls[0]["model"] == MessageComposer().text_model


def test_whatsapp_empty_reply_falls_back(fake_ai, matches):
    ai = fake_ai("")
    assert asyncio.run(MessageComposer(call_ai_fn=ai).generate_whatsapp_message(matches)) == \
        "Failed to generate message."


def test_whatsapp_failure_is_raised_classified(fake_ai, matches):
    ai = fake_ai(GeminiAPIError(503, "The model is overloaded."))
    with pytest.raises(AIServiceError) as excinfo:
        asyncio.run(MessageComposer(call_ai_fn=ai).generate_whatsapp_message(matches))
    assert str(excinfo.value) == OVERLOADED_MESSAGE


@pytest.mark.parametrize("kind, expected", [
    ("caption", "Instagram Caption (with 10-15 relevant hashtags)"),
    ("story", "Instagram Story overlay"),
])
def test_instagram_prompt(fake_ai, matches, kind, expected):
    ai = fake_ai("Match day! 🏏")
    text = asyncio.run(MessageComposer(call_ai_fn=ai).generate_instagram_content(
        matches, InstagramOptions(vibe="fun", type=kind)))
    assert text == "Match day! 🏏"
    assert expected in ai.prompt()
    assert "Vibe: fun" in ai.prompt()


def test_instagram_options_are_checked():
    with pytest.raises(InputValidationError):
        InstagramOptions(vibe="angry")
    with pytest.raises(InputValidationError):
        InstagramOptions(type="poster")


def test_poster_prompt_uses_short_venue(matches):
    prompt = build_poster_prompt(matches[0])
    assert '"Smashers"' in prompt
    assert '"Titans"' in prompt
    assert '"2025-12-07"' in prompt
    assert '"Azad Maidan"' in prompt
    assert "Mumbai" not in prompt
    assert "9:16" in prompt


def test_poster_prompt_default_home_team(matches):
    matches[0].home_team = None
    assert '"My Team"' in build_poster_prompt(matches[0])


def test_poster_returns_data_uri(fake_ai, matches):
    ai = fake_ai(AIResponse(image_mime_type="image/png", image_data="iVBORw0KGgo="))
    poster = asyncio.run(MessageComposer(call_ai_fn=ai).generate_match_poster(matches))
    assert poster.data_uri == "data:image/png;base64,iVBORw0KGgo="
    assert ai.calls[0]["image_config"] == {"aspectRatio": "9:16"}
    assert ai.calls[0]["model"] == MessageComposer().image_model


def test_poster_without_image_part_is_empty(fake_ai, matches):
    ai = fake_ai("I can't draw that.")
    poster = asyncio.run(MessageComposer(call_ai_fn=ai).generate_match_poster(matches))
    assert poster.is_empty


def test_poster_failure_raises(fake_ai, matches):
    ai = fake_ai(RuntimeError("quota exceeded"))
    with pytest.raises(AIServiceError) as excinfo:
        asyncio.run(MessageComposer(call_ai_fn=ai).generate_match_poster(matches))
    assert excinfo.value.category == "quota"
