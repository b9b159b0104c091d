"""
Single source of truth for all shared types in clawtop.

IMPORTANT: Import types from this module, not from individual files.
Collectors, the status deriver and the renderer all exchange these values.

Usage:
    from clawtop._types import (
        Metric, known_metric, unknown_metric,
        BoardWarning, build_warning, WarningSeverity,
        SecurityCard, BoardSnapshot,
        now_utc
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar


T = TypeVar("T")
C = TypeVar("C")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def now_utc() -> datetime:
    """
    Get current UTC time with timezone info.

    Use this instead of datetime.utcnow() which is deprecated.
    """
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# ENUMS
# =============================================================================


class StatusLevel(str, Enum):
    """Overall board verdict."""
    GREEN = "GREEN"
    AMBER = "AMBER"
    RED = "RED"


class WarningSeverity(str, Enum):
    """Severity of a collection advisory."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


# =============================================================================
# METRIC
# =============================================================================


@dataclass(frozen=True)
class Metric(Generic[T]):
    """
    A health signal that is either known (carries a value) or unknown
    (carries the reason it could not be determined).

    A known metric never holds None; an unknown metric always does.
    Keeping the two states explicit distinguishes "determined to be
    zero/false/empty" from "could not determine".
    """

    known: bool
    value: Optional[T] = None
    reason: Optional[str] = None

    def __post_init__(self):
        if self.known and self.value is None:
            raise ValueError("known metric requires a value")
        if not self.known and self.value is not None:
            raise ValueError("unknown metric must not carry a value")
        if not self.known and not self.reason:
            raise ValueError("unknown metric requires a reason")

    def to_dict(self) -> Dict[str, Any]:
        if self.known:
            return {"known": True, "value": self.value}
        return {"known": False, "reason": self.reason, "value": None}


def known_metric(value: T) -> Metric[T]:
    """Wrap an observed value."""
    return Metric(known=True, value=value)


def unknown_metric(reason: str) -> Metric[Any]:
    """Mark a signal as undetermined, with a human-readable reason."""
    return Metric(known=False, reason=reason)


def first_known(*metrics: Metric[T]) -> Metric[T]:
    """
    Return the first known metric of a fallback chain.

    When every attempt is unknown, the result is unknown and its reason
    chains the distinct reasons of all attempts in priority order.
    """
    reasons: List[str] = []
    for metric in metrics:
        if metric.known:
            return metric
        if metric.reason and metric.reason not in reasons:
            reasons.append(metric.reason)

    return unknown_metric("; ".join(reasons) or "no source available")


# =============================================================================
# WARNINGS
# =============================================================================


@dataclass(frozen=True)
class BoardWarning:
    """Structured, advisory diagnostic emitted by a collector."""

    source: str
    code: str
    reason: str
    severity: WarningSeverity = WarningSeverity.WARN
    context: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, str, str]:
        """Identity used to collapse duplicates."""
        return (self.source, self.code, self.reason, self.context or "")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "code": self.code,
            "reason": self.reason,
            "severity": self.severity.value,
            "source": self.source,
        }
        if self.context is not None:
            data["context"] = self.context
        return data


def build_warning(
    source: str,
    code: str,
    reason: str,
    severity: WarningSeverity = WarningSeverity.WARN,
    context: Optional[str] = None
) -> BoardWarning:
    return BoardWarning(
        source=source,
        code=code,
        reason=reason,
        severity=severity,
        context=context
    )


@dataclass(frozen=True)
class CollectorOutput(Generic[C]):
    """A collector's card plus the advisories raised while building it."""
    card: C
    warnings: Tuple[BoardWarning, ...] = ()


# =============================================================================
# CARDS
# =============================================================================


@dataclass(frozen=True)
class SecurityCard:
    critical: Metric[int]
    warning: Metric[int]
    info: Metric[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "critical": self.critical.to_dict(),
            "info": self.info.to_dict(),
            "warning": self.warning.to_dict(),
        }


@dataclass(frozen=True)
class CronCard:
    enabled_count: Metric[int]
    failing_or_recent_error_count: Metric[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabledCount": self.enabled_count.to_dict(),
            "failingOrRecentErrorCount": self.failing_or_recent_error_count.to_dict(),
        }


@dataclass(frozen=True)
class ChannelsCard:
    configured_count: Metric[int]
    connected_count: Metric[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "configuredCount": self.configured_count.to_dict(),
            "connectedCount": self.connected_count.to_dict(),
        }


@dataclass(frozen=True)
class AgentsCard:
    configured_count: Metric[int]

    def to_dict(self) -> Dict[str, Any]:
        return {"configuredCount": self.configured_count.to_dict()}


@dataclass(frozen=True)
class SessionsCard:
    active_count: Metric[int]
    # Input parameter echoed back, not an observation.
    active_window_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activeCount": self.active_count.to_dict(),
            "activeWindowMinutes": self.active_window_minutes,
        }


@dataclass(frozen=True)
class GatewayCard:
    reachable: Metric[bool]
    error: Metric[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error.to_dict(),
            "reachable": self.reachable.to_dict(),
        }


@dataclass(frozen=True)
class VersionDriftCard:
    installed_version: Metric[str]
    latest_version: Metric[str]
    update_available: Metric[bool]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "installedVersion": self.installed_version.to_dict(),
            "latestVersion": self.latest_version.to_dict(),
            "updateAvailable": self.update_available.to_dict(),
        }


@dataclass(frozen=True)
class RepoWorkspaceDrift:
    """Git drift observed for one agent workspace."""

    workspace_path: str
    repository_root: Metric[str]
    clean: Metric[bool]
    ahead_count: Metric[int]
    behind_count: Metric[int]
    diagnostics: Tuple[BoardWarning, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aheadCount": self.ahead_count.to_dict(),
            "behindCount": self.behind_count.to_dict(),
            "clean": self.clean.to_dict(),
            "diagnostics": [warning.to_dict() for warning in self.diagnostics],
            "repositoryRoot": self.repository_root.to_dict(),
            "workspacePath": self.workspace_path,
        }


@dataclass(frozen=True)
class RepoDriftCard:
    clean: Metric[bool]
    ahead_count: Metric[int]
    behind_count: Metric[int]
    dirty_count: Metric[int]
    repository_count: Metric[int]
    workspaces: Tuple[RepoWorkspaceDrift, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aheadCount": self.ahead_count.to_dict(),
            "behindCount": self.behind_count.to_dict(),
            "clean": self.clean.to_dict(),
            "dirtyCount": self.dirty_count.to_dict(),
            "repositoryCount": self.repository_count.to_dict(),
            "workspaces": [workspace.to_dict() for workspace in self.workspaces],
        }


@dataclass(frozen=True)
class OverallCard:
    """Derived verdict; only built by status.derive_overall_card."""
    level: StatusLevel
    reasons: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level.value, "reasons": list(self.reasons)}


# =============================================================================
# SNAPSHOT
# =============================================================================


@dataclass(frozen=True)
class BoardCards:
    """Every collected card, before the overall verdict is derived."""
    security: SecurityCard
    cron: CronCard
    channels: ChannelsCard
    agents: AgentsCard
    sessions: SessionsCard
    gateway: GatewayCard
    version_drift: VersionDriftCard
    repo_drift: RepoDriftCard


@dataclass(frozen=True)
class BoardSnapshot:
    """
    One point-in-time collection of every card.

    Built fresh by the orchestrator on each cycle and never mutated; the
    next cycle supersedes it with a new instance.
    """

    cards: BoardCards
    overall: OverallCard
    generated_at: datetime = field(default_factory=now_utc)
    warnings: Tuple[BoardWarning, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Machine-readable form written by ``clawtop --json``."""
        cards = self.cards
        return {
            "agents": cards.agents.to_dict(),
            "channels": cards.channels.to_dict(),
            "cron": cards.cron.to_dict(),
            "gateway": cards.gateway.to_dict(),
            "generatedAt": format_timestamp(self.generated_at),
            "overall": self.overall.to_dict(),
            "repoDrift": cards.repo_drift.to_dict(),
            "security": cards.security.to_dict(),
            "sessions": cards.sessions.to_dict(),
            "versionDrift": cards.version_drift.to_dict(),
            "warnings": [warning.to_dict() for warning in self.warnings],
        }
