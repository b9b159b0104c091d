"""
Terminal renderer for board snapshots.

Pure string building: nothing here touches the terminal. Each card gets a
tone that decides its border colour and title tag, and the board is laid
out either as two columns (wide terminals) or one column (compact).
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Sequence, Tuple

from ._types import BoardSnapshot, BoardWarning, Metric, StatusLevel, WarningSeverity

MINIMUM_VIEWPORT_WIDTH = 40
WIDE_LAYOUT_MIN_COLUMNS = 100
ADVISORIES_SHOWN = 2

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")
BRAND_TITLE = "CLAWTOP"
BRAND_SUBTITLE = "OpenClaw health board"


class CardTone(str, Enum):
    NEUTRAL = "neutral"
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


TONE_TAGS = {
    CardTone.AMBER: "ATTN",
    CardTone.GREEN: "OK",
    CardTone.NEUTRAL: "INFO",
    CardTone.RED: "ALERT",
}

SEVERITY_RANK = {
    WarningSeverity.INFO: 1,
    WarningSeverity.WARN: 2,
    WarningSeverity.ERROR: 3,
}


@dataclass(frozen=True)
class RenderOptions:
    color_enabled: bool = False
    columns: int = 80
    compact: bool = False


@dataclass(frozen=True)
class AnsiPalette:
    amber: str = ""
    border: str = ""
    brand: str = ""
    dim: str = ""
    green: str = ""
    red: str = ""
    reset: str = ""

    @classmethod
    def create(cls, color_enabled: bool) -> "AnsiPalette":
        if not color_enabled:
            return cls()
        return cls(
            amber="\x1b[38;5;221m",
            border="\x1b[38;5;240m",
            brand="\x1b[38;5;81m",
            dim="\x1b[38;5;245m",
            green="\x1b[38;5;114m",
            red="\x1b[38;5;203m",
            reset="\x1b[0m"
        )

    def tone(self, tone: CardTone) -> str:
        if tone == CardTone.GREEN:
            return self.green
        if tone == CardTone.AMBER:
            return self.amber
        if tone == CardTone.RED:
            return self.red
        return self.border


# =============================================================================
# Text helpers
# =============================================================================


def strip_ansi(value: str) -> str:
    return ANSI_PATTERN.sub("", value)


def normalize_columns(columns: int) -> int:
    return max(columns, MINIMUM_VIEWPORT_WIDTH)


def truncate_text(value: str, max_length: int) -> str:
    """Truncate to a visible length; colour codes are dropped when cutting."""
    if max_length <= 0:
        return ""
    plain = strip_ansi(value)
    if len(plain) <= max_length:
        return value
    if max_length <= 1:
        return plain[:max_length]
    return f"{plain[:max_length - 1]}…"


def pad_text(value: str, width: int) -> str:
    truncated = truncate_text(value, width)
    padding = max(width - len(strip_ansi(truncated)), 0)
    return truncated + " " * padding


def metric_text(metric: Metric[Any]) -> str:
    if not metric.known or metric.value is None:
        return "unknown"
    if isinstance(metric.value, bool):
        return "yes" if metric.value else "no"
    return str(metric.value)


def _known_value(metric: Metric[Any]) -> Any:
    return metric.value if metric.known else None


def _is_unknown(metric: Metric[Any]) -> bool:
    return not metric.known or metric.value is None


def format_display_timestamp(value: datetime) -> str:
    """'2026-02-14 09:30:00 UTC' style timestamp for the header."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


# =============================================================================
# Tones
# =============================================================================


def tone_for_level(level: StatusLevel) -> CardTone:
    if level == StatusLevel.GREEN:
        return CardTone.GREEN
    if level == StatusLevel.RED:
        return CardTone.RED
    return CardTone.AMBER


def security_tone(snapshot: BoardSnapshot) -> CardTone:
    security = snapshot.cards.security
    critical = _known_value(security.critical)
    warning = _known_value(security.warning)
    if critical is not None and critical > 0:
        return CardTone.RED
    if warning is not None and warning > 0:
        return CardTone.AMBER
    if any(_is_unknown(metric) for metric in (security.critical, security.warning, security.info)):
        return CardTone.AMBER
    return CardTone.GREEN


def cron_tone(snapshot: BoardSnapshot) -> CardTone:
    cron = snapshot.cards.cron
    failing = _known_value(cron.failing_or_recent_error_count)
    if failing is not None and failing > 0:
        return CardTone.RED
    if _is_unknown(cron.enabled_count) or _is_unknown(cron.failing_or_recent_error_count):
        return CardTone.AMBER
    return CardTone.GREEN


def channels_tone(snapshot: BoardSnapshot) -> CardTone:
    configured = _known_value(snapshot.cards.channels.configured_count)
    connected = _known_value(snapshot.cards.channels.connected_count)
    if configured is None or connected is None:
        return CardTone.AMBER
    if configured == 0:
        return CardTone.NEUTRAL
    return CardTone.AMBER if connected < configured else CardTone.GREEN


def agents_tone(snapshot: BoardSnapshot) -> CardTone:
    configured = _known_value(snapshot.cards.agents.configured_count)
    if configured is None:
        return CardTone.AMBER
    return CardTone.NEUTRAL if configured == 0 else CardTone.GREEN


def sessions_tone(snapshot: BoardSnapshot) -> CardTone:
    active = _known_value(snapshot.cards.sessions.active_count)
    if active is None:
        return CardTone.AMBER
    return CardTone.NEUTRAL if active == 0 else CardTone.GREEN


def repo_tone(snapshot: BoardSnapshot) -> CardTone:
    clean = _known_value(snapshot.cards.repo_drift.clean)
    behind = _known_value(snapshot.cards.repo_drift.behind_count)
    if clean is None or behind is None:
        return CardTone.AMBER
    if not clean or behind > 0:
        return CardTone.AMBER
    return CardTone.GREEN


def version_tone(snapshot: BoardSnapshot) -> CardTone:
    version = snapshot.cards.version_drift
    if _known_value(version.update_available) is True:
        return CardTone.AMBER
    if any(_is_unknown(metric) for metric in (
        version.installed_version, version.latest_version, version.update_available
    )):
        return CardTone.AMBER
    return CardTone.GREEN


def warning_tone(warnings: Sequence[BoardWarning]) -> CardTone:
    highest = max(
        (warning.severity for warning in warnings),
        key=SEVERITY_RANK.__getitem__,
        default=WarningSeverity.INFO
    )
    if highest == WarningSeverity.ERROR:
        return CardTone.RED
    if highest == WarningSeverity.WARN:
        return CardTone.AMBER
    return CardTone.NEUTRAL


# =============================================================================
# Cards
# =============================================================================


def level_badge(ansi: AnsiPalette, level: StatusLevel) -> str:
    return f"{ansi.tone(tone_for_level(level))}[{level.value}]{ansi.reset}"


def card_title(title: str, tone: CardTone) -> str:
    return f"{title} [{TONE_TAGS[tone]}]"


def build_card(
    ansi: AnsiPalette,
    title: str,
    body_lines: Sequence[str],
    width: int,
    tone: CardTone,
    minimum_body_lines: int
) -> List[str]:
    content_width = max(width - 2, 2)
    body_width = max(content_width - 2, 1)
    padded_body = list(body_lines) + [""] * max(minimum_body_lines - len(body_lines), 0)
    border_color = ansi.tone(tone)

    lines = [
        f"{border_color}┌{'─' * content_width}┐{ansi.reset}",
        f"{border_color}│ {pad_text(title, body_width)} │{ansi.reset}",
    ]
    lines.extend(f"{ansi.border}│ {pad_text(line, body_width)} │{ansi.reset}" for line in padded_body)
    lines.append(f"{border_color}└{'─' * content_width}┘{ansi.reset}")
    return lines


def merge_card_rows(left: Sequence[str], right: Sequence[str], gap: int = 2) -> List[str]:
    rows = max(len(left), len(right))
    return [
        f"{left[i] if i < len(left) else ''}{' ' * gap}{right[i] if i < len(right) else ''}"
        for i in range(rows)
    ]


def overall_card_lines(ansi: AnsiPalette, snapshot: BoardSnapshot) -> List[str]:
    reachable = snapshot.cards.gateway.reachable
    if reachable.known:
        gateway = "reachable" if reachable.value else "unreachable"
    else:
        gateway = "unknown"
    reasons = snapshot.overall.reasons

    return [
        f"Health: {level_badge(ansi, snapshot.overall.level)}",
        f"Gateway: {gateway}",
        f"Signal: {reasons[0] if reasons else 'healthy'}",
        f"Updated: {format_display_timestamp(snapshot.generated_at)}",
    ]


def security_card_lines(snapshot: BoardSnapshot) -> List[str]:
    security = snapshot.cards.security
    return [
        f"Critical findings: {metric_text(security.critical)}",
        f"Warning findings: {metric_text(security.warning)}",
        f"Info findings: {metric_text(security.info)}",
    ]


def cron_card_lines(snapshot: BoardSnapshot) -> List[str]:
    cron = snapshot.cards.cron
    return [
        f"Enabled jobs: {metric_text(cron.enabled_count)}",
        f"Failing/recent: {metric_text(cron.failing_or_recent_error_count)}",
        "Data source: openclaw cron",
    ]


def channels_card_lines(snapshot: BoardSnapshot) -> List[str]:
    channels = snapshot.cards.channels
    return [
        f"Configured channels: {metric_text(channels.configured_count)}",
        f"Connected channels: {metric_text(channels.connected_count)}",
        "Connected signal may be unknown",
    ]


def agents_card_lines(snapshot: BoardSnapshot) -> List[str]:
    return [
        f"Configured agents: {metric_text(snapshot.cards.agents.configured_count)}",
        "Data source: openclaw agents",
        "",
    ]


def sessions_card_lines(snapshot: BoardSnapshot) -> List[str]:
    sessions = snapshot.cards.sessions
    return [
        f"Active sessions: {metric_text(sessions.active_count)}",
        f"Activity window: {sessions.active_window_minutes} minutes",
        "Data source: openclaw sessions",
    ]


def repo_card_lines(snapshot: BoardSnapshot) -> List[str]:
    repo = snapshot.cards.repo_drift
    return [
        f"Clean repos: {metric_text(repo.clean)}",
        f"Ahead/Behind: {metric_text(repo.ahead_count)} / {metric_text(repo.behind_count)}",
        f"Repos/Dirty: {metric_text(repo.repository_count)} / {metric_text(repo.dirty_count)}",
    ]


def version_card_lines(snapshot: BoardSnapshot) -> List[str]:
    version = snapshot.cards.version_drift
    return [
        f"Installed: {metric_text(version.installed_version)}",
        f"Latest: {metric_text(version.latest_version)}",
        f"Update available: {metric_text(version.update_available)}",
    ]


CardSpec = Tuple[str, Callable[[BoardSnapshot], CardTone], Callable[[BoardSnapshot], List[str]]]

DETAIL_CARDS: Tuple[CardSpec, ...] = (
    ("Security Findings", security_tone, security_card_lines),
    ("Cron Health", cron_tone, cron_card_lines),
    ("Channels", channels_tone, channels_card_lines),
    ("Agents", agents_tone, agents_card_lines),
    ("Sessions", sessions_tone, sessions_card_lines),
    ("Repo Drift", repo_tone, repo_card_lines),
    ("Version Drift", version_tone, version_card_lines),
)


def _overall_card(ansi: AnsiPalette, snapshot: BoardSnapshot, width: int) -> List[str]:
    tone = tone_for_level(snapshot.overall.level)
    return build_card(
        ansi, card_title("Overall Status", tone), overall_card_lines(ansi, snapshot), width, tone, 4
    )


def _detail_card(ansi: AnsiPalette, snapshot: BoardSnapshot, spec: CardSpec, width: int) -> List[str]:
    title, tone_of, lines_of = spec
    tone = tone_of(snapshot)
    return build_card(ansi, card_title(title, tone), lines_of(snapshot), width, tone, 3)


# =============================================================================
# Layouts
# =============================================================================


def compact_layout(ansi: AnsiPalette, snapshot: BoardSnapshot, width: int) -> List[str]:
    card_width = max(width - 2, 28)
    lines = _overall_card(ansi, snapshot, card_width)
    for spec in DETAIL_CARDS:
        lines.extend(_detail_card(ansi, snapshot, spec, card_width))
    return lines


def wide_layout(ansi: AnsiPalette, snapshot: BoardSnapshot, width: int) -> List[str]:
    """Overall header, three rows of paired cards, version drift footer."""
    gap = 2
    full_width = max(width - 2, 40)
    column_width = max((full_width - gap) // 2, 24)
    effective_width = column_width * 2 + gap

    *paired, footer = DETAIL_CARDS
    lines = _overall_card(ansi, snapshot, effective_width)
    for left, right in zip(paired[0::2], paired[1::2]):
        lines.extend(merge_card_rows(
            _detail_card(ansi, snapshot, left, column_width),
            _detail_card(ansi, snapshot, right, column_width),
            gap
        ))
    lines.extend(_detail_card(ansi, snapshot, footer, effective_width))
    return lines


def warning_summary_line(ansi: AnsiPalette, warnings: Sequence[BoardWarning]) -> str:
    if not warnings:
        return f"{ansi.dim}Advisories: none{ansi.reset}"

    visible = warnings[:ADVISORIES_SHOWN]
    overflow = len(warnings) - len(visible)
    text = " | ".join(f"{warning.source}: {warning.reason}" for warning in visible)
    overflow_text = f" (+{overflow} more)" if overflow > 0 else ""
    color = ansi.tone(warning_tone(warnings))
    return f"{ansi.dim}Advisories({len(warnings)}): {color}{text}{overflow_text}{ansi.reset}"


def _brand_line(ansi: AnsiPalette, width: int) -> str:
    return truncate_text(f"{ansi.brand}{BRAND_TITLE}{ansi.reset} {ansi.dim}{BRAND_SUBTITLE}{ansi.reset}", width)


def board_header_lines(ansi: AnsiPalette, snapshot: BoardSnapshot, columns: int) -> List[str]:
    width = normalize_columns(columns)
    summary = "  ·  ".join([
        f"Overall {level_badge(ansi, snapshot.overall.level)}",
        f"Warnings {len(snapshot.warnings)}",
        f"Updated {format_display_timestamp(snapshot.generated_at)}",
    ])
    return [
        _brand_line(ansi, width),
        truncate_text(f"{ansi.dim}{summary}{ansi.reset}", width),
    ]


def _state_card(ansi: AnsiPalette, columns: int, title: str, lines: Sequence[str], tone: CardTone) -> str:
    width = max(normalize_columns(columns) - 2, 38)
    return "\n".join(build_card(ansi, card_title(title, tone), lines, width, tone, 4))


# =============================================================================
# Public API
# =============================================================================


def render_loading_state(options: RenderOptions) -> str:
    """Placeholder frame shown before the first snapshot arrives."""
    ansi = AnsiPalette.create(options.color_enabled)
    width = normalize_columns(options.columns)
    card = _state_card(ansi, width, "Starting clawtop", [
        "Collecting OpenClaw metrics...",
        "Preparing dashboard layout...",
        "First snapshot will appear automatically.",
    ], CardTone.NEUTRAL)
    subtitle = truncate_text(f"{ansi.dim}Starting dashboard refresh loop...{ansi.reset}", width)
    return "\n".join([_brand_line(ansi, width), subtitle, "", card])


def render_error_state(message: str, options: RenderOptions) -> str:
    """Frame shown when a refresh raised instead of producing a snapshot."""
    ansi = AnsiPalette.create(options.color_enabled)
    width = normalize_columns(options.columns)
    card = _state_card(ansi, width, "Refresh Error", [
        "Snapshot collection failed.",
        f"Reason: {message}",
        "Check openclaw CLI access and command compatibility.",
        "Retry with: clawtop --once --json",
    ], CardTone.RED)
    subtitle = truncate_text(f"{ansi.red}Snapshot refresh failed{ansi.reset}", width)
    return "\n".join([_brand_line(ansi, width), subtitle, "", card])


def render_board(snapshot: BoardSnapshot, options: RenderOptions) -> str:
    ansi = AnsiPalette.create(options.color_enabled)
    width = normalize_columns(options.columns)
    compact = options.compact or width < WIDE_LAYOUT_MIN_COLUMNS
    frame = compact_layout(ansi, snapshot, width) if compact else wide_layout(ansi, snapshot, width)

    return "\n".join([
        *board_header_lines(ansi, snapshot, width),
        truncate_text(warning_summary_line(ansi, snapshot.warnings), width),
        "",
        *frame,
    ])
