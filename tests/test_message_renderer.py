"""Tests for platform message rendering."""

from datetime import datetime, timezone

import pytest

from app.schemas import EventKind, PlatformKind
from app.services.message_renderer import (
    ATTACHMENT_COLORS,
    CARD_COLORS,
    EMBED_COLORS,
    render_discord_embed,
    render_generic,
    render_message,
    render_slack_message,
    render_teams_card,
    truncate,
)
from conftest import make_endpoint, make_event


def _facts(card):
    return {f["name"]: f["value"] for f in card["sections"][0]["facts"]}


# ── Teams card ───────────────────────────────────────────
class TestTeamsCard:
    def test_ai_fact_and_created_color(self):
        card = render_teams_card(make_event(ai_generated=True, model_used="GPT-4o"))
        assert _facts(card)["AI Generated"] == "Yes (GPT-4o)"
        assert card["themeColor"] == CARD_COLORS[EventKind.CREATED] == "0078d4"

    def test_fixed_facts(self):
        facts = _facts(render_teams_card(make_event()))
        assert facts["Repository"] == "acme/widgets"
        assert facts["Branch"] == "feature/retry → main"
        assert facts["Author"] == "dev@example.com"
        assert facts["Files Changed"] == "5"
        assert facts["Commits"] == "3"
        assert "Created" in facts

    def test_schema_markers(self):
        card = render_teams_card(make_event())
        assert card["@type"] == "MessageCard"
        assert card["@context"] == "http://schema.org/extensions"
        assert card["summary"] == "🚀 New Pull Request Created: Add retry to webhook sender"

    @pytest.mark.parametrize("kind,color", [
        (EventKind.CREATED, "0078d4"),
        (EventKind.UPDATED, "ffa500"),
        (EventKind.MERGED, "107c10"),
        (EventKind.CLOSED, "d13438"),
    ])
    def test_color_per_event(self, kind, color):
        assert render_teams_card(make_event(kind))["themeColor"] == color

    def test_graceful_degradation(self):
        event = make_event(description="   ", url="", ai_generated=False, model_used=None)
        card = render_teams_card(event)
        assert len(card["sections"]) == 1
        assert "potentialAction" not in card
        assert "AI Generated" not in _facts(card)

    def test_ai_flag_without_model_has_no_fact(self):
        card = render_teams_card(make_event(ai_generated=True, model_used=None))
        assert "AI Generated" not in _facts(card)

    def test_long_description_truncated(self):
        card = render_teams_card(make_event(description="x" * 400))
        subtitle = card["sections"][1]["activitySubtitle"]
        assert subtitle == "x" * 300 + "..."

    def test_view_action(self):
        card = render_teams_card(make_event())
        action = card["potentialAction"][0]
        assert action["@type"] == "OpenUri"
        assert action["targets"] == [{"os": "default", "uri": "https://github.com/acme/widgets/pull/42"}]


def test_truncate_short_text_untouched():
    assert truncate("short") == "short"
    assert truncate("y" * 300) == "y" * 300


# ── Slack ────────────────────────────────────────────────
def test_slack_message():
    msg = render_slack_message(make_event(EventKind.MERGED))
    assert msg["text"] == "✅ Pull Request merged"
    att = msg["attachments"][0]
    assert att["color"] == "good"
    assert att["title_link"] == "https://github.com/acme/widgets/pull/42"
    assert [f["title"] for f in att["fields"]] == ["Repository", "Author", "Branch"]
    assert att["fields"][2] == {"title": "Branch", "value": "feature/retry → main", "short": False}


def test_slack_colors_three_states():
    assert set(ATTACHMENT_COLORS.values()) == {"good", "warning", "danger"}
    assert render_slack_message(make_event(EventKind.CLOSED))["attachments"][0]["color"] == "danger"


def test_slack_without_url_has_no_link():
    att = render_slack_message(make_event(url=""))["attachments"][0]
    assert "title_link" not in att


# ── Discord ──────────────────────────────────────────────
def test_discord_embed():
    ts = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    event = make_event(EventKind.UPDATED).model_copy(update={"timestamp": ts})
    embed = render_discord_embed(event)["embeds"][0]
    assert embed["title"] == "Pull Request updated"
    assert embed["description"] == "Add retry to webhook sender"
    assert embed["color"] == EMBED_COLORS[EventKind.UPDATED] == 16776960
    assert embed["url"] == "https://github.com/acme/widgets/pull/42"
    assert embed["timestamp"] == "2026-10-19T12:00:00+00:00"
    assert [f["inline"] for f in embed["fields"]] == [True, True, False]


def test_discord_without_url():
    embed = render_discord_embed(make_event(url=""))["embeds"][0]
    assert "url" not in embed


# ── Dispatch over platform kind ──────────────────────────
def test_generic_is_raw_event():
    event = make_event()
    body = render_generic(event)
    assert body["kind"] == "pr_created"
    assert body["pull_request"]["files_changed"] == 5
    assert render_message(event, PlatformKind.GENERIC) == body


def test_render_message_selects_renderer():
    event = make_event()
    assert "@type" in render_message(event, PlatformKind.TEAMS)
    assert "attachments" in render_message(event, PlatformKind.SLACK)
    assert "embeds" in render_message(event, PlatformKind.DISCORD)


def test_unknown_platform_resolves_to_generic():
    ep = make_endpoint(platform="mattermost")
    assert ep.platform == PlatformKind.GENERIC
    assert render_message(make_event(), ep.platform)["kind"] == "pr_created"
