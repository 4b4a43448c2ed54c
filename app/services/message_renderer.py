"""Message renderer — turns a PR event into the body a chat platform expects.

Every renderer reads only ``NotificationEvent`` facts. Optional facts (PR URL,
AI model, description) drop the message element that depends on them instead
of emitting a placeholder.
"""

from typing import Callable

from app.schemas import EventKind, NotificationEvent, PlatformKind

DESCRIPTION_LIMIT = 300
CARD_ACTIVITY_IMAGE = "https://raw.githubusercontent.com/microsoft/vscode/main/resources/win32/code_70x70.png"

# ── Per-event styling ────────────────────────────────────
EVENT_TITLES = {
    EventKind.CREATED: "🚀 New Pull Request Created",
    EventKind.UPDATED: "📝 Pull Request Updated",
    EventKind.MERGED: "✅ Pull Request Merged",
    EventKind.CLOSED: "❌ Pull Request Closed",
}

EVENT_EMOJIS = {
    EventKind.CREATED: "🚀",
    EventKind.UPDATED: "📝",
    EventKind.MERGED: "✅",
    EventKind.CLOSED: "❌",
}

CARD_COLORS = {
    EventKind.CREATED: "0078d4",  # blue
    EventKind.UPDATED: "ffa500",  # orange
    EventKind.MERGED: "107c10",   # green
    EventKind.CLOSED: "d13438",   # red
}

ATTACHMENT_COLORS = {
    EventKind.CREATED: "good",
    EventKind.UPDATED: "warning",
    EventKind.MERGED: "good",
    EventKind.CLOSED: "danger",
}

EMBED_COLORS = {
    EventKind.CREATED: 3447003,    # 0x3498db
    EventKind.UPDATED: 16776960,   # 0xffff00
    EventKind.MERGED: 3066993,     # 0x2ecc71
    EventKind.CLOSED: 15158332,    # 0xe74c3c
}


def truncate(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _format_timestamp(event: NotificationEvent) -> str:
    return event.timestamp.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


# ── Renderers ────────────────────────────────────────────
def render_teams_card(event: NotificationEvent) -> dict:
    """MessageCard with themed color, a fact section and optional description/action."""
    pr = event.pull_request
    title = EVENT_TITLES[event.kind]

    facts = [
        {"name": "Repository", "value": pr.repository},
        {"name": "Branch", "value": pr.branch_arrow},
        {"name": "Author", "value": pr.author},
        {"name": "Files Changed", "value": str(pr.files_changed)},
        {"name": "Commits", "value": str(pr.commits)},
        {"name": "Created", "value": _format_timestamp(event)},
    ]
    if pr.ai_generated and pr.model_used:
        facts.append({"name": "AI Generated", "value": f"Yes ({pr.model_used})"})

    card = {
        "@type": "MessageCard",
        "@context": "http://schema.org/extensions",
        "themeColor": CARD_COLORS[event.kind],
        "summary": f"{title}: {pr.title}",
        "sections": [
            {
                "activityTitle": title,
                "activitySubtitle": pr.title,
                "activityImage": CARD_ACTIVITY_IMAGE,
                "facts": facts,
                "markdown": True,
            }
        ],
    }

    if pr.description and pr.description.strip():
        card["sections"].append({
            "activityTitle": "📋 Description",
            "activitySubtitle": truncate(pr.description),
            "facts": [],
            "markdown": True,
        })

    if pr.url:
        card["potentialAction"] = [
            {
                "@type": "OpenUri",
                "name": "View Pull Request",
                "targets": [{"os": "default", "uri": pr.url}],
            }
        ]

    return card


def render_slack_message(event: NotificationEvent) -> dict:
    pr = event.pull_request
    attachment = {
        "color": ATTACHMENT_COLORS[event.kind],
        "title": pr.title,
        "fields": [
            {"title": "Repository", "value": pr.repository, "short": True},
            {"title": "Author", "value": pr.author, "short": True},
            {"title": "Branch", "value": pr.branch_arrow, "short": False},
        ],
    }
    if pr.url:
        attachment["title_link"] = pr.url

    return {
        "text": f"{EVENT_EMOJIS[event.kind]} Pull Request {event.kind.label}",
        "attachments": [attachment],
    }


def render_discord_embed(event: NotificationEvent) -> dict:
    pr = event.pull_request
    embed = {
        "title": f"Pull Request {event.kind.label}",
        "description": pr.title,
        "color": EMBED_COLORS[event.kind],
        "fields": [
            {"name": "Repository", "value": pr.repository, "inline": True},
            {"name": "Author", "value": pr.author, "inline": True},
            {"name": "Branch", "value": pr.branch_arrow, "inline": False},
        ],
        "timestamp": event.timestamp.isoformat(),
    }
    if pr.url:
        embed["url"] = pr.url

    return {"embeds": [embed]}


def render_generic(event: NotificationEvent) -> dict:
    return event.model_dump(mode="json")


RENDERERS: dict[PlatformKind, Callable[[NotificationEvent], dict]] = {
    PlatformKind.TEAMS: render_teams_card,
    PlatformKind.SLACK: render_slack_message,
    PlatformKind.DISCORD: render_discord_embed,
    PlatformKind.GENERIC: render_generic,
}


def render_message(event: NotificationEvent, platform: PlatformKind) -> dict:
    """Build the JSON body for ``platform``; anything unrecognised gets the generic body."""
    renderer = RENDERERS.get(platform, render_generic)
    return renderer(event)
