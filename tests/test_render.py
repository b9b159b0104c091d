"""
Tests for the terminal renderer.
"""

import dataclasses
from datetime import datetime, timezone

import pytest

from clawtop._types import BoardSnapshot, StatusLevel, WarningSeverity, build_warning, known_metric, unknown_metric
from clawtop.render import (
    CardTone,
    RenderOptions,
    channels_tone,
    metric_text,
    pad_text,
    render_board,
    render_error_state,
    render_loading_state,
    security_tone,
    strip_ansi,
    truncate_text,
    warning_tone,
)
from clawtop.status import derive_overall_card

GENERATED_AT = datetime(2026, 2, 14, 9, 30, 0, tzinfo=timezone.utc)


def make_snapshot(cards, warnings=()):
    return BoardSnapshot(
        cards=cards,
        overall=derive_overall_card(cards),
        generated_at=GENERATED_AT,
        warnings=tuple(warnings)
    )


@pytest.fixture
def snapshot(healthy_cards):
    return make_snapshot(healthy_cards)


# =============================================================================
# Text helpers
# =============================================================================


def test_metric_text():
    assert metric_text(known_metric(3)) == "3"
    assert metric_text(known_metric(True)) == "yes"
    assert metric_text(known_metric(False)) == "no"
    assert metric_text(unknown_metric("x")) == "unknown"


def test_truncate_and_pad():
    assert truncate_text("abcdef", 4) == "abc…"
    assert truncate_text("abc", 4) == "abc"
    assert truncate_text("abc", 0) == ""
    assert pad_text("ab", 5) == "ab   "


def test_strip_ansi():
    assert strip_ansi("\x1b[38;5;81mCLAWTOP\x1b[0m") == "CLAWTOP"


# =============================================================================
# Tones
# =============================================================================


def test_security_tone(healthy_cards):
    red = dataclasses.replace(healthy_cards.security, critical=known_metric(1))
    unknown = dataclasses.replace(healthy_cards.security, info=unknown_metric("x"))

    assert security_tone(make_snapshot(healthy_cards)) == CardTone.GREEN
    assert security_tone(make_snapshot(dataclasses.replace(healthy_cards, security=red))) == CardTone.RED
    assert security_tone(make_snapshot(dataclasses.replace(healthy_cards, security=unknown))) == CardTone.AMBER


def test_channels_tone_neutral_when_none_configured(healthy_cards):
    channels = dataclasses.replace(
        healthy_cards.channels, configured_count=known_metric(0), connected_count=known_metric(0)
    )
    assert channels_tone(make_snapshot(dataclasses.replace(healthy_cards, channels=channels))) == CardTone.NEUTRAL


def test_warning_tone_uses_highest_severity():
    info = build_warning("a", "b", "c", WarningSeverity.INFO)
    error = build_warning("a", "b", "d", WarningSeverity.ERROR)

    assert warning_tone([]) == CardTone.NEUTRAL
    assert warning_tone([info]) == CardTone.NEUTRAL
    assert warning_tone([info, error]) == CardTone.RED


# =============================================================================
# render_board
# =============================================================================


def test_render_board_plain(snapshot):
    output = render_board(snapshot, RenderOptions(color_enabled=False, columns=80))

    assert "\x1b[" not in output
    lines = output.splitlines()
    assert lines[0] == "CLAWTOP OpenClaw health board"
    assert "Overall [GREEN]" in lines[1]
    assert "Updated 2026-02-14 09:30:00 UTC" in lines[1]
    assert lines[2] == "Advisories: none"
    assert "Overall Status [OK]" in output
    assert "Signal: all health checks passed" in output


def test_render_board_compact_fits_width(snapshot):
    output = render_board(snapshot, RenderOptions(columns=80))
    assert all(len(line) <= 80 for line in output.splitlines())


def test_render_board_wide_layout_pairs_cards(snapshot):
    output = render_board(snapshot, RenderOptions(columns=120))

    paired = [line for line in output.splitlines() if "Security Findings" in line]
    assert len(paired) == 1
    assert "Cron Health" in paired[0]
    assert all(len(line) <= 120 for line in output.splitlines())


def test_compact_flag_forces_single_column(snapshot):
    output = render_board(snapshot, RenderOptions(columns=160, compact=True))
    paired = [line for line in output.splitlines() if "Security Findings" in line]
    assert "Cron Health" not in paired[0]


def test_narrow_terminal_uses_minimum_width(snapshot):
    output = render_board(snapshot, RenderOptions(columns=10))
    assert max(len(line) for line in output.splitlines()) <= 40


def test_unknown_metrics_render_as_unknown(healthy_cards):
    sessions = dataclasses.replace(healthy_cards.sessions, active_count=unknown_metric("down"))
    output = render_board(make_snapshot(dataclasses.replace(healthy_cards, sessions=sessions)), RenderOptions())

    assert "Active sessions: unknown" in output
    assert "Sessions [ATTN]" in output


def test_red_board_tags(healthy_cards):
    gateway = dataclasses.replace(healthy_cards.gateway, reachable=known_metric(False))
    snapshot = make_snapshot(dataclasses.replace(healthy_cards, gateway=gateway))

    output = render_board(snapshot, RenderOptions())

    assert snapshot.overall.level == StatusLevel.RED
    assert "Overall Status [ALERT]" in output
    assert "Gateway: unreachable" in output


def test_advisories_show_two_and_overflow(healthy_cards):
    warnings = [build_warning("src", f"code{i}", f"reason {i}") for i in range(4)]
    output = render_board(make_snapshot(healthy_cards, warnings), RenderOptions(columns=200))

    advisories = output.splitlines()[2]
    assert advisories.startswith("Advisories(4): src: reason 0 | src: reason 1 (+2 more)")


def test_color_output_contains_ansi(snapshot):
    output = render_board(snapshot, RenderOptions(color_enabled=True, columns=100))
    assert "\x1b[38;5;114m" in output
    assert strip_ansi(output).splitlines()[0] == "CLAWTOP OpenClaw health board"


# =============================================================================
# State frames
# =============================================================================


def test_render_loading_state():
    output = render_loading_state(RenderOptions())
    assert "Starting clawtop [INFO]" in output
    assert "Collecting OpenClaw metrics..." in output


def test_render_error_state():
    output = render_error_state("openclaw hung", RenderOptions())
    assert "Refresh Error [ALERT]" in output
    assert "Reason: openclaw hung" in output
    assert "Retry with: clawtop --once --json" in output
