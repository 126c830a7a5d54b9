"""
tests/test_notifications.py — Unit tests for Discord embed builders
"""
from __future__ import annotations

from app.models import (
    ApplicationBody,
    BugReportBody,
    ButtonStyle,
    DiscordUser,
    SuggestionBody,
)
from app.services.notifications import (
    COLOR_LUMINOUS_VIVID_PINK,
    COLOR_RED,
    EMBED_TOTAL_LIMIT,
    FIELD_VALUE_LIMIT,
    build_application_embed,
    build_application_notification,
    build_bug_notification,
    build_decision_row,
    build_log_notification,
    build_suggestion_notification,
)


def _body(**overrides) -> ApplicationBody:
    data = {"memberId": "123", "courses": ["A", "B"], "age": "20", "timeDedication": "5h"}
    data.update(overrides)
    return ApplicationBody.model_validate(data)


def _fields(embed) -> dict[str, str]:
    return {f.name: f.value for f in embed.fields}


def test_application_embed_fields(member):
    embed = build_application_embed(member, ["Python 101", "Web Basics"], _body())
    fields = _fields(embed)
    assert embed.title == "New course Application"
    assert embed.description == "A,B"
    assert fields["User"] == "<@123>"
    assert fields["Age"] == "20"
    assert fields["Time Dedication"] == "5h"
    assert fields["Courses"] == "Python 101\nWeb Basics"
    assert all(f.inline for f in embed.fields)


def test_application_embed_missing_optionals_render_none(member):
    fields = _fields(build_application_embed(member, ["A"], _body()))
    assert fields["Experience"] == "None"
    assert fields["Misc"] == "None"


def test_application_embed_keeps_optional_text(member):
    body = _body(experienceDetails="Two years of Python", misc="Night owl")
    fields = _fields(build_application_embed(member, ["A"], body))
    assert fields["Experience"] == "Two years of Python"
    assert fields["Misc"] == "Night owl"


def test_application_embed_thumbnail_is_member_avatar(member):
    embed = build_application_embed(member, ["A"], _body())
    assert embed.thumbnail.url == "https://cdn.discordapp.com/avatars/123/abc123.png"


def test_application_embed_tolerates_unresolved_member():
    embed = build_application_embed(None, ["A"], _body())
    assert embed.thumbnail is None
    assert _fields(embed)["User"] == "Unknown"
    assert "<@" not in embed.model_dump_json()


def test_long_field_values_are_clipped(member):
    body = _body(misc="x" * 5000)
    value = _fields(build_application_embed(member, ["A"], body))["Misc"]
    assert len(value) == FIELD_VALUE_LIMIT


def test_application_embed_fits_total_limit(member):
    long = "y" * 2000
    body = _body(
        courses=[str(n) * 18 for n in range(200)],
        age=long,
        experienceDetails=long,
        timeDedication=long,
        misc=long,
    )
    course_names = [f"Course {n}" for n in range(200)]
    embed = build_application_embed(member, course_names, body)

    total = len(embed.title) + len(embed.description)
    total += sum(len(f.name) + len(f.value) for f in embed.fields)
    assert total <= EMBED_TOTAL_LIMIT
    fields = _fields(embed)
    assert fields["Courses"].startswith("Course 0")
    assert fields["User"] == member.user.mention
    assert all(f.value for f in embed.fields)


def test_decision_row_tags_buttons_with_member_id():
    row = build_decision_row("123", "11", "22")
    accept, reject = row.components
    assert (accept.label, accept.custom_id, accept.style) == ("Accept", "accept_123", ButtonStyle.SUCCESS)
    assert (reject.label, reject.custom_id, reject.style) == ("Reject", "reject_123", ButtonStyle.DANGER)
    assert accept.emoji.id == "11"
    assert reject.emoji.id == "22"


def test_application_notification_payload(member):
    payload = build_application_notification(member, ["A"], _body(), "11", "22").to_payload()
    assert payload["components"][0]["type"] == 1
    assert [b["custom_id"] for b in payload["components"][0]["components"]] == ["accept_123", "reject_123"]
    # None-valued keys are not sent to Discord
    assert "color" not in payload["embeds"][0]


def test_log_notification_known_level():
    embed = build_log_notification("error", "boom", {"a": 1}).embeds[0]
    assert embed.title == "error"
    assert embed.color == COLOR_RED
    assert embed.description == 'error: boom\n```json\n{"a": 1}\n```'


def test_log_notification_unknown_level_is_pink():
    embed = build_log_notification("trace", "hi", None).embeds[0]
    assert embed.color == COLOR_LUMINOUS_VIVID_PINK
    assert "null" in embed.description


def test_log_notification_has_no_components():
    assert "components" not in build_log_notification("log", "x", {}).to_payload()


def test_bug_notification(user):
    body = BugReportBody(title="Lesson froze", user=user.id, type="LESSON_GLITCH", desc="Stuck on step 3")
    embed = build_bug_notification(user, body).embeds[0]
    assert embed.title == "LESSON_GLITCH: Lesson froze (grace#1906)"
    assert embed.description == "Stuck on step 3"
    assert embed.author.name == "grace"
    assert embed.thumbnail.url == "https://cdn.discordapp.com/embed/avatars/1.png"


def test_suggestion_notification_for_migrated_username():
    user = DiscordUser(id="175928847299117063", username="neo", discriminator="0")
    body = SuggestionBody(title="Dark mode", user=user.id, desc="Please")
    embed = build_suggestion_notification(user, body).embeds[0]
    assert embed.title == "Suggestion: Dark mode (neo)"
    assert embed.author.icon_url == embed.thumbnail.url
