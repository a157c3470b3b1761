import asyncio
import json
from datetime import date

import pandas as pd
import pytest

from cricsync.ai import GeminiAPIError
from cricsync.app import CricSyncApp
from cricsync.composer import MessageComposer
from cricsync.extractor import MatchExtractor
from cricsync.fixtures import normalize_matches
from cricsync.models import ExtractionResult, Source, TeamSearchQuery
from cricsync.session import SessionState
from cricsync.utils import POSTER_EMPTY_MESSAGE, SHARE_FAILED_MESSAGE

SATURDAY = date(2025, 12, 6)


def fenced(records):
    return f"```json\n{json.dumps(records)}\n```"


def make_app(extract_ai, compose_ai):
    return CricSyncApp(extractor=MatchExtractor(call_ai_fn=extract_ai),
                       composer=MessageComposer(call_ai_fn=compose_ai))


@pytest.fixture
def state():
    s = SessionState()
    s.add_extraction(ExtractionResult(
        matches=normalize_matches([
            {"date": "2025-12-07", "opponent": "Titans", "venue": "Azad Maidan"},
            {"date": "2025-12-03", "opponent": "Kings", "venue": "TBD"},
            {"date": "later", "opponent": "Rovers"},
        ]),
        sources=[Source(title="Fixtures", uri="https://example.com")],
    ))
    return s


def test_update_toggle_delete_clear(state):
    kings, titans, rovers = state.matches
    state.update_match(titans.id, time="9:00 AM", venue="Oval Ground")
    assert titans.time == "9:00 AM"
    with pytest.raises(ValueError):
        state.update_match(titans.id, id="other")
    with pytest.raises(KeyError):
        state.update_match("missing", time="1")

    state.toggle_selected(titans.id)
    assert [m.opponent for m in state.selected_matches()] == ["Kings", "Titans"]

    state.delete_match(kings.id)
    assert [m.opponent for m in state.matches] == ["Titans", "Rovers"]

    state.generated_message = "hello"
    state.clear_all()
    assert state.matches == [] and state.sources == [] and state.generated_message == ""


def test_select_only_forces_single_selection(state):
    for m in state.matches:
        m.selected = True
    rovers = state.matches[2]
    state.select_only(rovers.id)
    assert [m.opponent for m in state.selected_matches()] == ["Rovers"]


def test_logs_and_history(state):
    state.add_log("one")
    state.add_log("two")
    assert state.logs == ["one", "two"]
    state.clear_logs()
    assert state.logs == []

    state.set_generated_message("")
    state.set_generated_message("msg")
    assert [h.content for h in state.history] == ["msg"]
    state.clear_history()
    assert state.history == []


def test_week_days(state):
    days = state.week_days(today=SATURDAY)
    assert [d.date for d in days][0] == date(2025, 12, 1)
    assert [d.date for d in days][-1] == date(2025, 12, 7)
    assert [d.date.day for d in days if d.has_match] == [3, 7]
    assert [d.date for d in days if d.is_today] == [SATURDAY]


def test_sorted_matches_descending(state):
    assert [m.opponent for m in state.sorted_matches(descending=True)] == ["Titans", "Kings", "Rovers"]


def test_export_matches_csv(state, tmp_path):
    path = state.export_matches_csv(str(tmp_path / "out" / "fixtures.csv"))
    df = pd.read_csv(path)
    assert list(df["opponent"]) == ["Kings", "Titans", "Rovers"]
    assert list(df.columns)[:3] == ["id", "date", "time"]


def test_extraction_appends_and_auto_drafts(fake_ai):
    extract_ai = fake_ai(fenced([{"date": "2025-12-06", "opponent": "Titans", "venue": "Azad Maidan"}]))
    compose_ai = fake_ai("Upcoming Match\nDate - 6th Dec Saturday")
    app = make_app(extract_ai, compose_ai)
    app.state.fees = "300"
    app.state.add_log("stale")

    result = asyncio.run(app.extract(TeamSearchQuery(team_name="Smashers"), "search", today=SATURDAY))

    assert len(result.matches) == 1
    assert app.state.matches == result.matches
    assert "stale" not in app.state.logs
    assert app.state.logs[0].startswith("[Flow Start]")
    assert app.state.generated_message == "Upcoming Match\nDate - 6th Dec Saturday"
    assert "Match fees - 300" in compose_ai.prompt()
    assert len(app.state.history) == 1


def test_empty_search_leaves_session_untouched(fake_ai):
    compose_ai = fake_ai()
    app = make_app(fake_ai(fenced([{"date": "2025-12-15", "opponent": "Later XI"}])), compose_ai)
    result = asyncio.run(app.extract(TeamSearchQuery(team_name="Smashers"), "search", today=SATURDAY))
    assert result.is_empty
    assert app.state.matches == []
    assert compose_ai.calls == []


def test_auto_draft_failure_keeps_matches(fake_ai):
    app = make_app(fake_ai(fenced([{"date": "2025-12-10", "opponent": "Titans"}])),
                   fake_ai(GeminiAPIError(429, "quota")))
    result = asyncio.run(app.extract("vs Titans on 10 Dec", "text"))
    assert len(app.state.matches) == 1
    assert result.matches[0].selected
    assert app.state.generated_message == ""


def test_share_match(fake_ai, state):
    compose_ai = fake_ai("Rovers message")
    app = CricSyncApp(composer=MessageComposer(call_ai_fn=compose_ai), state=state)
    rovers = state.matches[2]
    assert asyncio.run(app.share_match(rovers.id)) == "Rovers message"
    assert [m.opponent for m in state.selected_matches()] == ["Rovers"]
    assert "Rovers" in compose_ai.prompt() and "Titans" not in compose_ai.prompt()


def test_share_match_failure_message(fake_ai, state):
    app = CricSyncApp(composer=MessageComposer(call_ai_fn=fake_ai(RuntimeError("boom"))), state=state)
    assert asyncio.run(app.share_match(state.matches[1].id)) == SHARE_FAILED_MESSAGE
    assert state.generated_message == SHARE_FAILED_MESSAGE


def test_empty_poster_sets_hint(fake_ai, state):
    app = CricSyncApp(composer=MessageComposer(call_ai_fn=fake_ai("no image")), state=state)
    poster = asyncio.run(app.generate_poster())
    assert poster.is_empty
    assert state.generated_message == POSTER_EMPTY_MESSAGE
